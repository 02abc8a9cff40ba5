"""
Todo core schemas for the base system

This module contains schemas for users and their credentials,
the tasks owned by users and the globally shared tags as well
as the generic envelope used by paginated list endpoints.
"""

import datetime as _dt
from typing import Generic, List, Optional, TypeVar

import pydantic


__all__ = [
    "Token", "LoginRequest", "RegistrationRequest",
    "User", "Tag", "Task", "TaskCreation", "TaskPatch", "Page"
]

ResultType = TypeVar("ResultType")


class Token(pydantic.BaseModel):
    token: str


class LoginRequest(pydantic.BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegistrationRequest(pydantic.BaseModel):
    """
    Registration payload; completeness is checked by the endpoint to produce readable errors
    """

    email: Optional[str] = None
    password: Optional[str] = None
    confirmPassword: Optional[str] = None
    display_name: Optional[pydantic.constr(max_length=100)] = None


class User(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    email: pydantic.constr(max_length=255)
    display_name: pydantic.constr(max_length=100)
    createdAt: _dt.datetime
    updatedAt: _dt.datetime


class Tag(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    name: pydantic.constr(max_length=100)
    createdAt: _dt.datetime
    updatedAt: _dt.datetime


class Task(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    title: pydantic.constr(max_length=100)
    description: Optional[str] = None
    done: bool
    datetime: _dt.datetime
    createdAt: _dt.datetime
    updatedAt: _dt.datetime


class TaskCreation(pydantic.BaseModel):
    title: Optional[pydantic.constr(max_length=100)] = None
    description: Optional[str] = None
    done: Optional[bool] = None
    datetime: Optional[str] = None
    """Due date as ISO 8601 string, kept raw to report the offending literal"""


class TaskPatch(pydantic.BaseModel):
    title: Optional[pydantic.constr(max_length=100)] = None
    description: Optional[str] = None
    done: Optional[bool] = None
    datetime: Optional[str] = None


class Page(pydantic.BaseModel, Generic[ResultType]):
    total: pydantic.NonNegativeInt
    hasNext: bool
    hasPrev: bool
    results: List[ResultType]
