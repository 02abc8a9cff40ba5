"""
Todo core API dependency library
"""

import logging
from typing import Generator, Optional

import sqlalchemy.exc
from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from . import auth
from .base import Unauthenticated
from ..persistence import database, models
from ..settings import Settings


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def get_session() -> Generator[Session, None, bool]:
    """
    Return a generator to handle database sessions gracefully
    """

    session = database.get_new_session()

    try:
        yield session
        session.flush()
    except sqlalchemy.exc.DBAPIError as exc:
        details = (exc.statement or "").replace("\n", "")
        logger.exception(f"{type(exc).__name__}: {exc} @ {details!r}")
        session.rollback()
        raise
    except sqlalchemy.exc.SQLAlchemyError as exc:
        logger.exception(f"{type(exc).__name__}: {str(exc)}")
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    return True


def get_settings(request: Request) -> Settings:
    """
    Return the settings the application has been created with
    """

    return request.app.state.settings


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Return the token of a ``Bearer <token>`` header value or None for other values
    """

    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


async def check_auth_token(
        authorization: Optional[str] = Header(None),
        settings: Settings = Depends(get_settings)
) -> int:
    """
    Verify the bearer token of the request and return the user ID it was issued for
    """

    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthenticated("missing or malformed 'Authorization' header")
    try:
        return auth.verify_access_token(token, settings.server)
    except auth.InvalidOrExpiredToken as exc:
        logger.debug(f"Rejected token: {exc}")
        raise Unauthenticated("invalid or expired token") from exc


class MinimalRequestData:
    """
    Collection of minimal dependencies used by path operations without authentication
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            settings: Settings = Depends(get_settings)
    ):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.session = session
        self.config = settings


class LocalRequestData(MinimalRequestData):
    """
    Collection of core dependencies used by all protected path operations

    This class stores references to various important objects that
    will almost certainly be used by request handlers (path operations),
    most notably the ``user`` who has been authenticated by the bearer token.
    A token of a user that doesn't exist (anymore) is treated like any
    other invalid token. Note that any dependency added here will be added
    to the OpenAPI definition, if it refers to a Query, Header, Path or Cookie.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            settings: Settings = Depends(get_settings),
            user_id: int = Depends(check_auth_token)
    ):
        super().__init__(request, response, session, settings)
        user = session.get(models.User, user_id)
        if user is None:
            raise Unauthenticated(f"token owner {user_id} couldn't be determined")
        self.user: models.User = user
