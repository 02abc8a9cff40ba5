"""
Todo core router module for /tasks requests
"""

import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Query

from ..base import BadRequest
from ..dependency import LocalRequestData
from ..querying import PaginationParameters, build_task_filters, paginate, utcnow
from .. import helpers
from ...persistence import models
from ... import schemas


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"],
    responses={403: {"model": schemas.APIError}}
)


@router.get(
    "",
    response_model=schemas.Page[schemas.Task],
    responses={400: {"model": schemas.APIError}}
)
async def search_for_tasks(
        pagination: PaginationParameters = Depends(PaginationParameters),
        title: Optional[str] = Query(None, description="Only tasks whose title contains this value"),
        done: Optional[str] = Query(None, description="Only finished (`true`) or unfinished (`false`) tasks"),
        late: Optional[str] = Query(None, description="Only overdue (`true`) or not yet due (`false`) tasks"),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return the selected page of the tasks of the requesting user that fulfill *all* given filters

    * `400`: if the pagination parameters are invalid (checked first)
        or a filter value isn't one of the allowed choices
    """

    page = pagination.parse()
    task_filters = build_task_filters(local.user, {"title": title, "done": done, "late": late})
    return paginate(local.session, models.Task, page, task_filters)


@router.get(
    "/{task_id}",
    response_model=schemas.Task,
    responses={404: {"model": schemas.APIError}}
)
async def get_task_by_id(task_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the task model of a specific task ID

    * `404`: if the task doesn't exist or belongs to another user
    """

    return (await helpers.return_owned_task(task_id, local.user, local.session)).schema


@router.post(
    "",
    status_code=201,
    response_model=schemas.Task,
    responses={400: {"model": schemas.APIError}}
)
async def create_new_task(
        task: Optional[schemas.TaskCreation] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new task owned by the requesting user

    The `datetime` defaults to the current time, `done` defaults to `false`.

    * `400`: if the title is missing or the datetime can't be parsed
    """

    task = task or schemas.TaskCreation()
    if not task.title:
        raise BadRequest("Title is mandatory")
    model = models.Task(
        title=task.title,
        description=task.description,
        done=bool(task.done),
        datetime=helpers.parse_datetime(task.datetime) if task.datetime else utcnow(),
        user_id=local.user.id
    )
    local.session.add(model)
    local.session.commit()
    logger.debug(f"Created task {model!r}")
    return model.schema


@router.patch(
    "/{task_id}",
    response_model=schemas.Task,
    responses={k: {"model": schemas.APIError} for k in (400, 404)}
)
async def patch_existing_task(
        task_id: pydantic.NonNegativeInt,
        patch: Optional[schemas.TaskPatch] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Change the given fields of a task of the requesting user

    Fields which are omitted or `null` remain unchanged. If no field
    is given at all, the unchanged task is returned without any write.

    * `400`: if the new title is empty or the datetime can't be parsed
    * `404`: if the task doesn't exist or belongs to another user
    """

    model = await helpers.return_owned_task(task_id, local.user, local.session)

    changes = {k: v for k, v in (patch or schemas.TaskPatch()).model_dump().items() if v is not None}
    if changes.get("datetime") == "":
        del changes["datetime"]
    if "title" in changes and not changes["title"]:
        raise BadRequest("Title is mandatory")
    if "datetime" in changes:
        changes["datetime"] = helpers.parse_datetime(changes["datetime"])

    if changes:
        for key, value in changes.items():
            setattr(model, key, value)
        local.session.add(model)
        local.session.commit()
        logger.debug(f"Patched task {model!r} with fields {sorted(changes)}")
    return model.schema


@router.delete(
    "/{task_id}",
    status_code=204,
    responses={404: {"model": schemas.APIError}}
)
async def delete_existing_task(task_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete a task of the requesting user permanently

    * `404`: if the task doesn't exist or belongs to another user
    """

    model = await helpers.return_owned_task(task_id, local.user, local.session)
    return await helpers.delete_one_of_model(model, local.session, logger)
