"""
Todo core library of composable task filters

Every filter is a small immutable value that compiles into exactly one
SQLAlchemy predicate on the ``tasks`` table. The ``FILTERS`` tuple holds
the declarations of all filters which may be used as query parameters,
in the order in which their predicates are joined to the owner predicate.
"""

import datetime
import dataclasses
from typing import Callable, Iterable, List, Mapping, Optional, Tuple, Union

import sqlalchemy
from sqlalchemy.sql.elements import ColumnElement

from ..persistence import models


BOOLEAN_CHOICES: Tuple[str, ...] = ("true", "false")


@dataclasses.dataclass(frozen=True)
class OwnedBy:
    user_id: int

    def compile(self) -> ColumnElement:
        return models.Task.user_id == self.user_id


@dataclasses.dataclass(frozen=True)
class TitleContains:
    value: str

    def compile(self) -> ColumnElement:
        return models.Task.title.contains(self.value, autoescape=True)


@dataclasses.dataclass(frozen=True)
class DoneEquals:
    done: bool

    def compile(self) -> ColumnElement:
        return models.Task.done == self.done


@dataclasses.dataclass(frozen=True)
class OverdueBefore:
    """
    Select tasks due before ``now`` (if ``late`` is set) or tasks due at or after ``now``
    """

    now: datetime.datetime
    late: bool

    def compile(self) -> ColumnElement:
        if self.late:
            return models.Task.datetime < self.now
        return models.Task.datetime >= self.now


TaskFilter = Union[OwnedBy, TitleContains, DoneEquals, OverdueBefore]


@dataclasses.dataclass(frozen=True)
class FilterDeclaration:
    """
    Declaration of a query parameter that turns into a task filter

    The factory receives the raw query value and the reference time of the
    request. If ``choices`` is set, the raw value must be one of them.
    """

    name: str
    factory: Callable[[str, datetime.datetime], TaskFilter]
    choices: Optional[Tuple[str, ...]] = None

    def accepts(self, value: str) -> bool:
        return self.choices is None or value in self.choices


FILTERS: Tuple[FilterDeclaration, ...] = (
    FilterDeclaration("title", lambda value, _: TitleContains(value)),
    FilterDeclaration("done", lambda value, _: DoneEquals(value == "true"), BOOLEAN_CHOICES),
    FilterDeclaration("late", lambda value, now: OverdueBefore(now, value == "true"), BOOLEAN_CHOICES)
)


class InvalidFilterValue(ValueError):
    """
    Exception raised when a query parameter doesn't match the choices of its filter
    """

    def __init__(self, declaration: FilterDeclaration, value: str):
        super().__init__(f"Value for {declaration.name} must be one of : {', '.join(declaration.choices)}")
        self.declaration = declaration
        self.value = value


def parse_filters(
        params: Mapping[str, str],
        now: datetime.datetime,
        declarations: Iterable[FilterDeclaration] = FILTERS
) -> List[TaskFilter]:
    """
    Create the list of filters for all declared query parameters present in ``params``

    :param params: mapping of query parameter names to their raw values
    :param now: reference time of the request, used by time-based filters
    :param declarations: ordered filter declarations that should be considered
    :return: list of filters in declaration order
    :raises InvalidFilterValue: when a value isn't one of the choices of its filter
    """

    result = []
    for declaration in declarations:
        if declaration.name not in params:
            continue
        value = params[declaration.name]
        if not declaration.accepts(value):
            raise InvalidFilterValue(declaration, value)
        result.append(declaration.factory(value, now))
    return result


def compile_filters(filters: Iterable[TaskFilter]) -> ColumnElement:
    """
    Join the predicates of all filters to a single conjunction
    """

    return sqlalchemy.and_(*[f.compile() for f in filters])
