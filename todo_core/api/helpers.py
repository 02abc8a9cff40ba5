"""
Generic helper library for the core REST API
"""

import datetime
import logging
from typing import Optional, Type

import pydantic
import sqlalchemy.orm
from fastapi.responses import Response

from .base import BadRequest, NotFound
from ..persistence import models
from ..misc.logger import enforce_logger


_DATETIME_ADAPTER = pydantic.TypeAdapter(datetime.datetime)


async def return_one(
        object_id: int,
        model: Type[models.Base],
        session: sqlalchemy.orm.Session,
        resource: Optional[str] = None,
        **constraints
) -> models.Base:
    """
    Return the object of a given model that's identified by its object ID

    :param object_id: internal ID (primary key in the database) of the model
    :param model: class of a SQLAlchemy model
    :param session: database session which should be used to perform the query
    :param resource: optional name of the resource used in error messages
    :param constraints: further attribute checks on the model (e.g. the owner ID);
        an object failing those checks is treated as if it wouldn't exist
    :return: resulting entity as SQLAlchemy model
    :raises NotFound: when the specified object ID returned no result
    """

    obj = session.get(model, object_id)
    if obj is None or any(getattr(obj, k) != v for k, v in constraints.items()):
        raise NotFound(resource or model.__name__, f"{model.__name__} with ID {object_id!r}")
    return obj


async def return_owned_task(task_id: int, user: models.User, session: sqlalchemy.orm.Session) -> models.Task:
    return await return_one(task_id, models.Task, session, "Task", user_id=user.id)


def parse_datetime(value: str) -> datetime.datetime:
    """
    Parse an ISO 8601 date or datetime string into a naive UTC timestamp

    Values without timezone information are considered to be UTC already.

    :raises BadRequest: when the value can't be understood as a datetime
    """

    message = f"\"{value}\" is not a valid ISO datetime"
    try:
        result = _DATETIME_ADAPTER.validate_python(value.strip())
    except pydantic.ValidationError as exc:
        raise BadRequest(message, str(exc.errors())) from exc
    if result.tzinfo is not None:
        try:
            result = result.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        except OverflowError as exc:
            raise BadRequest(message, f"{value!r} is out of range in UTC") from exc
    return result


async def delete_one_of_model(
        obj: models.Base,
        session: sqlalchemy.orm.Session,
        logger: Optional[logging.Logger] = None
) -> Response:
    """
    Delete the given instance of a model from the database

    :param obj: the previously loaded (and access checked) instance
    :param session: database session which should be used to perform the deletion
    :param logger: optional logger that should be used for DEBUG messages
    """

    enforce_logger(logger).debug(f"Deleting model {obj!r}...")
    session.delete(obj)
    session.commit()
    return Response(status_code=204)
