"""
Todo core router module for /tags requests
"""

import pydantic
from fastapi import APIRouter, Depends

from ..dependency import LocalRequestData
from ..querying import PaginationParameters, paginate
from .. import helpers
from ...persistence import models
from ... import schemas


router = APIRouter(
    prefix="/tags",
    tags=["Tags"],
    responses={403: {"model": schemas.APIError}}
)


@router.get(
    "",
    response_model=schemas.Page[schemas.Tag],
    responses={400: {"model": schemas.APIError}}
)
async def get_all_tags(
        pagination: PaginationParameters = Depends(PaginationParameters),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return the selected page of all tags, which are shared between all users

    * `400`: if the pagination parameters are invalid
    """

    return paginate(local.session, models.Tag, pagination.parse())


@router.get(
    "/{tag_id}",
    response_model=schemas.Tag,
    responses={404: {"model": schemas.APIError}}
)
async def get_tag_by_id(tag_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the tag model of a specific tag ID

    * `404`: if the tag ID is unknown
    """

    return (await helpers.return_one(tag_id, models.Tag, local.session, "Tag")).schema
