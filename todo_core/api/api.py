"""
Todo core REST API definitions

This API lets users register an account, log in to obtain a
bearer token and manage their personal tasks with it. Tags are
shared between all users and can only be read via this API.
"""

import logging.config
from typing import Optional

import fastapi

from . import base
from .routers import routers
from .. import schemas, __version__
from ..persistence import database
from ..settings import Settings


LICENSE_INFO = {
    "name": "GNU General Public License v3",
    "url": "https://www.gnu.org/licenses/gpl-3.0.html"
}


API_DOC = """Todo core REST API definition

This API requires authentication using JSON web tokens. Register an account
first (see `POST /auth/register`), then log in with email and password (see
`POST /auth/login`) to obtain a token that should be included in the
`Authorization` header with the type `Bearer`. Tokens expire after one hour.

All error responses use the schema of the `APIError`. The following status
codes are used by the API besides the usual success codes:

1. The `400` (Bad Request) error response is returned for invalid input,
   e.g. missing fields, invalid pagination or filter values, malformed
   datetimes or an email address that is already in use. The `message`
   field contains a short description that can be shown to end users.
2. The `403` (Forbidden) error response is returned for protected endpoints
   whenever no valid bearer token was given, regardless whether the token is
   missing, expired, tampered or belongs to a deleted user. It's also returned
   for failed logins, without revealing whether the email address exists.
3. The `404` (Not Found) error response is returned whenever a model ID can't
   be found. Tasks of other users are reported as not found as well.
4. The `500` (Internal Server Error) response is returned for unexpected
   problems. Its `message` doesn't contain any technical details.

Take a look at the individual methods and endpoints for more information.
"""


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        configure_database: bool = True
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.
    The settings are stored in the application state, where the request
    dependencies look them up (see ``dependency.get_settings``).

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param configure_database: switch whether to configure the database
    :return: new ``FastAPI`` instance
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if configure_database:
        database.init(settings.database.connection, settings.database.debug_sql)

    app = base.APIWithoutValidationError(
        title="Todo core REST API",
        version=__version__,
        description=API_DOC,
        license_info=LICENSE_INFO,
        responses={400: {"model": schemas.APIError}}
    )
    app.state.settings = settings

    for exc, handler in base.DEFAULT_EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc, handler)
    for router in routers:
        app.include_router(router)

    logger.info("API initialized")
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn todo_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def get_app(self) -> fastapi.FastAPI:
        return self.app

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
