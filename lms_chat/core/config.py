# lms_chat/core/config.py
"""Application configuration using Pydantic."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings

START_CHAT_MESSAGE = "Hello, I would like to start a chat regarding the course."


class Settings(BaseSettings):
    database_url: str = 'sqlite+aiosqlite:///./lms_chat.db'
    redis_url: str = 'redis://localhost:6379/0'
    jwt_secret_key: str = 'change-me'
    jwt_algorithm: str = 'HS256'
    auth_cookie_name: str = 'token'

    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'
    allowed_origins: List[str] = ['http://localhost:5173']

    cache_enabled: bool = True
    cache_ttl_seconds: int = 300

    max_message_length: int = 5000
    start_chat_message: str = START_CHAT_MESSAGE

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
