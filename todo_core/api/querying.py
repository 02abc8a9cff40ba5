"""
Pagination and filtering helper library for the list endpoints of the core REST API
"""

import re
import collections
import datetime
from typing import Iterable, Mapping, Optional, Type

import sqlalchemy
from fastapi import Query
from sqlalchemy.orm import Session

from .base import BadRequest
from .. import schemas
from ..misc import filters
from ..persistence import models


DEFAULT_PAGE: int = 1
DEFAULT_LIMIT: int = 5
MAX_LIMIT: int = 250

PAGINATION_ERROR_MESSAGE = "Pagination error"

_INTEGER_PATTERN = re.compile(r"^\s*[+-]?[0-9]+\s*$", re.ASCII)


class Pagination(collections.namedtuple("Pagination", ("page", "limit"))):
    """
    Validated, 1-indexed page number and page size
    """

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def has_next(self, total: int) -> bool:
        return self.limit * self.page < max(total, self.limit)

    def has_prev(self) -> bool:
        return self.page > 1


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    if not _INTEGER_PATTERN.match(value):
        raise ValueError(f"invalid integer {value!r}")
    return int(value)


def parse_pagination(page: Optional[str] = None, limit: Optional[str] = None) -> Pagination:
    """
    Parse the raw page and limit query parameters

    :raises BadRequest: when one of the values is not an integer or out of range
    """

    try:
        result = Pagination(_parse_int(page, DEFAULT_PAGE), _parse_int(limit, DEFAULT_LIMIT))
    except ValueError as exc:
        raise BadRequest(PAGINATION_ERROR_MESSAGE, f"page={page!r}, limit={limit!r}") from exc
    if result.page < 1 or not 1 <= result.limit <= MAX_LIMIT:
        raise BadRequest(PAGINATION_ERROR_MESSAGE, f"page={page!r}, limit={limit!r}")
    return result


class PaginationParameters:
    """
    Dependency collecting the raw pagination query parameters of a list endpoint
    """

    def __init__(
            self,
            page: Optional[str] = Query(None, description=f"1-indexed page number (default: {DEFAULT_PAGE})"),
            limit: Optional[str] = Query(
                None,
                description=f"Number of results per page between 1 and {MAX_LIMIT} (default: {DEFAULT_LIMIT})"
            )
    ):
        self.page = page
        self.limit = limit

    def parse(self) -> Pagination:
        return parse_pagination(self.page, self.limit)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def build_task_filters(
        user: models.User,
        params: Mapping[str, Optional[str]],
        now: Optional[datetime.datetime] = None
) -> list:
    """
    Build the owner filter followed by the filters requested in the query parameters

    :param user: user who owns all tasks that should be found
    :param params: mapping of the filter query parameters (``None`` values are absent)
    :param now: optional reference time of the request (defaults to the current UTC time)
    :raises BadRequest: when a query value doesn't match the choices of its filter
    """

    present = {k: v for k, v in params.items() if v is not None}
    try:
        requested = filters.parse_filters(present, now or utcnow())
    except filters.InvalidFilterValue as exc:
        raise BadRequest(str(exc), f"{exc.declaration.name}={exc.value!r}") from exc
    return [filters.OwnedBy(user.id), *requested]


def paginate(
        session: Session,
        model: Type[models.Base],
        pagination: Pagination,
        task_filters: Optional[Iterable[filters.TaskFilter]] = None
) -> schemas.Page:
    """
    Count all matching objects of a model and return the selected page of them

    :param session: database session which should be used to perform the queries
    :param model: class of a SQLAlchemy model
    :param pagination: validated page and limit
    :param task_filters: optional filters which are joined to a single conjunction
    :return: page envelope holding the schemas of the selected objects
    """

    query = session.query(model)
    if task_filters:
        query = query.filter(filters.compile_filters(task_filters))
    total = query.count()
    objects = query.order_by(sqlalchemy.asc(model.id)).offset(pagination.offset).limit(pagination.limit).all()
    return schemas.Page(
        total=total,
        hasNext=pagination.has_next(total),
        hasPrev=pagination.has_prev(),
        results=[obj.schema for obj in objects]
    )
