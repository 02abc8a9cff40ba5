"""
Todo core REST API base library
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas


logger = logging.getLogger(__name__)


class APIWithoutValidationError(FastAPI):
    """
    FastAPI class that excludes 422 validation error responses in OpenAPI schema
    """

    def openapi(self) -> Dict[str, Any]:
        if not self.openapi_schema:
            self.openapi_schema = get_openapi(
                title=self.title,
                version=self.version,
                openapi_version=self.openapi_version,
                description=self.description,
                terms_of_service=self.terms_of_service,
                contact=self.contact,
                license_info=self.license_info,
                routes=self.routes,
                tags=self.openapi_tags,
                servers=self.servers,
            )
            for path, operations in self.openapi_schema.get("paths", {}).items():
                for method, metadata in operations.items():
                    metadata.get("responses", {}).pop("422", None)
        return self.openapi_schema


def _make_error_response(
        request: Request,
        status_code: int,
        message: str,
        details: str,
        repeat: bool = False,
        headers: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    return _make_error_response(
        request,
        500,
        "Unexpected server error. The requested action wasn't completed successfully.",
        ""
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(["\t" + error["msg"] for error in exc.errors()])
    message = f"Failed to process the request:\n{msgs}"
    return _make_error_response(request, 400, message, str(exc.errors()), repeat=False)


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or str(exc.detail or exc.__class__.__name__)

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        return _make_error_response(
            request,
            status_code,
            message,
            "" if exc.detail is None else str(exc.detail),
            repeat=repeat,
            headers=getattr(exc, "headers", None)
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=True,
            message=message
        )


class Unauthenticated(APIException):
    """
    Exception when a protected resource was requested without valid bearer token

    Missing, malformed, expired or tampered tokens as well as tokens of
    unknown users are deliberately indistinguishable for the client.
    """

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=403,
            detail=detail,
            repeat=False,
            message="JWT Token required",
            headers={"WWW-Authenticate": "Bearer"}
        )


class Forbidden(APIException):
    """
    Exception when a client is not allowed to perform an action, e.g. due to invalid credentials
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=403,
            detail=detail,
            repeat=False,
            message=message
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{resource} not found"
        )


class Conflict(APIException):
    """
    Exception for violated uniqueness constraints or other data clashes

    The status code defaults to 409, but may be lowered to 400 where
    existing clients expect a plain validation failure for the clash.
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False, status_code: int = 409):
        super().__init__(
            status_code=status_code,
            detail=detail,
            repeat=repeat,
            message=message
        )


class InternalServerException(APIException):
    """
    Exception for problems within the server implementation
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=500,
            detail=detail,
            repeat=repeat,
            message=message
        )


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: APIException.handle,
    RequestValidationError: handle_request_validation_error,
    Exception: handle_generic_exception
}
