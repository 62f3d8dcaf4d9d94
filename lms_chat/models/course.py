from sqlalchemy import Column, String, Uuid, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class Course(Base):
    """Catalog record owned by the course service; read-only here."""
    __tablename__ = "courses"

    title = Column(String(200), nullable=False)
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    creator = relationship("User", lazy="joined")

    @property
    def instructor_id(self):
        return self.creator_id
