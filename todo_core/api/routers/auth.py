"""
Todo core router module for account registration and authentication
"""

import logging
from typing import Optional

import sqlalchemy.exc
from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, Header
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response

from ..base import BadRequest, Conflict, Forbidden, InternalServerException
from ..dependency import MinimalRequestData, extract_bearer_token, get_settings
from .. import auth
from ...persistence import models
from ...settings import Settings
from ... import schemas


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

MIN_PASSWORD_LENGTH: int = 8


@router.post(
    "/register",
    status_code=204,
    response_class=Response,
    responses={400: {"model": schemas.APIError}, 500: {"model": schemas.APIError}}
)
async def register(
        body: Optional[schemas.RegistrationRequest] = None,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Register a new account using email address, password and display name

    The password must be at least eight characters long and repeated
    in the field `confirmPassword`. The email address must be valid and
    not be used by any other account. A successful registration doesn't
    log the user in, use `POST /auth/login` afterwards.

    * `400`: if a field is missing, the password is too short or doesn't
        match its confirmation, the email is not valid or already in use
    """

    data = body or schemas.RegistrationRequest()
    if not (data.email and data.password and data.confirmPassword and data.display_name):
        raise BadRequest("All fields are mandatory")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"Password must be atleast {MIN_PASSWORD_LENGTH} characters long")
    if data.password != data.confirmPassword:
        raise BadRequest("Provided passwords don't match")

    hashed_password = await run_in_threadpool(auth.hash_password, data.password, local.config.server)

    try:
        validate_email(data.email, check_deliverability=False)
    except EmailNotValidError as exc:
        raise BadRequest("The email is not valid", str(exc)) from exc

    email_taken = Conflict(
        "An account with the provided email already exists",
        f"email={data.email!r}",
        status_code=400
    )
    if local.session.query(models.User).filter_by(email=data.email).first() is not None:
        raise email_taken

    user = models.User(email=data.email, password=hashed_password, display_name=data.display_name)
    local.session.add(user)
    try:
        local.session.commit()
    except sqlalchemy.exc.IntegrityError as exc:
        local.session.rollback()
        raise email_taken from exc
    except sqlalchemy.exc.SQLAlchemyError as exc:
        local.session.rollback()
        logger.exception("Unknown error while storing a new user!")
        raise InternalServerException("Unknown error", type(exc).__name__) from exc

    logger.info(f"Registered new user {user.id} with email {user.email!r}")
    return Response(status_code=204)


@router.post(
    "/login",
    response_model=schemas.Token,
    responses={400: {"model": schemas.APIError}, 403: {"model": schemas.APIError}}
)
async def login(
        body: Optional[schemas.LoginRequest] = None,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Login using email and password to obtain a bearer token valid for one hour

    The token must be included in the `Authorization` header of all
    protected requests, using the scheme `Bearer`.

    * `400`: if the email or password is missing
    * `403`: if the email is unknown or the password is wrong
    """

    data = body or schemas.LoginRequest()
    if not data.email or not data.password:
        raise BadRequest("Fields 'email' and 'password' are mandatory")

    logger.debug(f"Login request using email {data.email!r}...")
    invalid_credentials = Forbidden("Email or password incorrect", f"email={data.email!r}, password=?")
    user = local.session.query(models.User).filter_by(email=data.email).first()
    if user is None:
        raise invalid_credentials
    if not await run_in_threadpool(auth.verify_password, data.password, user.password, local.config.server):
        raise invalid_credentials

    return {"token": auth.create_access_token(user.id, local.config.server)}


@router.post(
    "/verify-token",
    response_class=PlainTextResponse,
    responses={200: {"content": {"text/plain": {"example": "ok"}}}, 401: {"content": {"text/plain": {"example": "nok"}}}}
)
async def verify_token(
        authorization: Optional[str] = Header(None),
        settings: Settings = Depends(get_settings)
):
    """
    Check whether the bearer token is correctly signed and not expired yet

    Returns the plain text `ok` (200) or `nok` (401). The owner of the
    token is not looked up, use any protected endpoint for that purpose.
    """

    token = extract_bearer_token(authorization)
    if token is None:
        return PlainTextResponse("nok", status_code=401)
    try:
        auth.verify_access_token(token, settings.server)
    except auth.InvalidOrExpiredToken:
        return PlainTextResponse("nok", status_code=401)
    return PlainTextResponse("ok")
