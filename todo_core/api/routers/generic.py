"""
Todo core router module generic functionalities
"""

import pydantic
from fastapi import APIRouter


router = APIRouter(tags=["Generic"])


class Home(pydantic.BaseModel):
    message: str


@router.get("/", response_model=Home)
async def get_home():
    """
    Return a static greeting to show that the API is reachable
    """

    return {"message": "home"}


@router.get("/health", response_model=pydantic.BaseModel)
async def verify_running_backend():
    """
    Return 200 OK with an empty object as body to only verify that the service and the middlewares work
    """

    return {}
