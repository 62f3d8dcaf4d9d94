from sqlalchemy import Column, String, CheckConstraint
from .base import Base

USER_ROLES = ("student", "instructor")


class User(Base):
    """Account record owned by the user service; read-only here."""
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    avatar = Column(String(500), nullable=True)
    role = Column(String(20), nullable=False, default="student")

    __table_args__ = (
        CheckConstraint("role IN ('student', 'instructor')", name="ck_users_role"),
    )
