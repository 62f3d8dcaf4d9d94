import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lms_chat.core.database import init_models
from lms_chat.core.security import create_access_token
from lms_chat.models import Course, User


def make_engine():
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession, autoflush=False)


async def seed_people(session: AsyncSession) -> SimpleNamespace:
    """Two students, two instructors, one course each"""
    people = SimpleNamespace(
        student=User(id=uuid4(), name="Asha Student", email="asha@example.com", role="student"),
        other_student=User(id=uuid4(), name="Ben Student", email="ben@example.com", role="student"),
        instructor=User(id=uuid4(), name="Irene Instructor", email="irene@example.com",
                        avatar="https://cdn.example.com/irene.png", role="instructor"),
        other_instructor=User(id=uuid4(), name="Omar Instructor", email="omar@example.com", role="instructor"),
    )
    session.add_all([people.student, people.other_student, people.instructor, people.other_instructor])
    await session.flush()

    people.course = Course(id=uuid4(), title="Intro to Python", creator_id=people.instructor.id)
    people.other_course = Course(id=uuid4(), title="Data Structures", creator_id=people.other_instructor.id)
    session.add_all([people.course, people.other_course])
    await session.commit()
    return people


def auth_token(user: User) -> str:
    return create_access_token(user.id, user.role)


@pytest.fixture
async def engine():
    engine = make_engine()
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def people(db):
    return await seed_people(db)


class RecordingNotifier:
    """Stands in for the realtime gateway"""

    def __init__(self, online=(), fail=False):
        self.online = {str(user_id) for user_id in online}
        self.fail = fail
        self.pushed = []

    async def push_new_message(self, receiver_id, message):
        if self.fail:
            raise RuntimeError("socket write failed")
        if str(receiver_id) not in self.online:
            return False
        self.pushed.append((str(receiver_id), message))
        return True
