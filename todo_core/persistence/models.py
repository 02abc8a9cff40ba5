"""
Todo core database models
"""

import datetime as _dt
from typing import List

from sqlalchemy import Boolean, DateTime, Integer, String, Text, Column, ForeignKey, Table
from sqlalchemy.orm import relationship

from .database import Base
from .. import schemas


def _now() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)


def _utc(value: _dt.datetime) -> _dt.datetime:
    """
    Attach the UTC timezone to a naive timestamp as loaded from the database
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
)


class User(Base):
    """
    Model representing one registered account owning a set of tasks
    """

    __tablename__ = "users"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    email: str = Column(String(255), nullable=False, unique=True)
    password: str = Column(String(255), nullable=False)
    """One-way hash of the password, never the plain password itself"""
    display_name: str = Column(String(100), nullable=False)
    created: _dt.datetime = Column(DateTime, nullable=False, default=_now)
    modified: _dt.datetime = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    tasks: List["Task"] = relationship(
        "Task",
        back_populates="owner",
        cascade="all,delete-orphan",
        passive_deletes=True
    )

    @property
    def schema(self) -> schemas.User:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.User(
            id=self.id,
            email=self.email,
            display_name=self.display_name,
            createdAt=_utc(self.created),
            updatedAt=_utc(self.modified)
        )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email!r})"


class Tag(Base):
    """
    Model representing a label that may be attached to the tasks of any user
    """

    __tablename__ = "tags"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    name: str = Column(String(100), nullable=False)
    created: _dt.datetime = Column(DateTime, nullable=False, default=_now)
    modified: _dt.datetime = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    tasks: List["Task"] = relationship("Task", secondary=task_tags, back_populates="tags")

    @property
    def schema(self) -> schemas.Tag:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Tag(
            id=self.id,
            name=self.name,
            createdAt=_utc(self.created),
            updatedAt=_utc(self.modified)
        )

    def __repr__(self) -> str:
        return f"Tag(id={self.id}, name={self.name!r})"


class Task(Base):
    """
    Model representing a single task which belongs to exactly one user
    """

    __tablename__ = "tasks"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    title: str = Column(String(100), nullable=False)
    description: str = Column(Text, nullable=True)
    done: bool = Column(Boolean, nullable=False, default=False)
    datetime: _dt.datetime = Column(DateTime, nullable=False, default=_now)
    """Due date of the task, stored as naive UTC timestamp"""
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created: _dt.datetime = Column(DateTime, nullable=False, default=_now)
    modified: _dt.datetime = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    owner: User = relationship("User", back_populates="tasks")
    tags: List[Tag] = relationship("Tag", secondary=task_tags, back_populates="tasks")

    @property
    def schema(self) -> schemas.Task:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Task(
            id=self.id,
            title=self.title,
            description=self.description,
            done=self.done,
            datetime=_utc(self.datetime),
            createdAt=_utc(self.created),
            updatedAt=_utc(self.modified)
        )

    def __repr__(self) -> str:
        return f"Task(id={self.id}, user_id={self.user_id}, title={self.title!r}, done={self.done})"
