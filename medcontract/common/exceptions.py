from collections.abc import Iterable
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from medcontract.common.logging import get_logger

logger = get_logger("errors")


class MedContractException(HTTPException):
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(MedContractException):
    def __init__(self, resource: str, resource_id: str | None = None):
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} '{resource_id}' not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class NotAuthenticatedError(MedContractException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(detail=detail, status_code=status.HTTP_401_UNAUTHORIZED)
        self.headers = {"WWW-Authenticate": "Bearer"}


class PermissionDeniedError(MedContractException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(MedContractException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ValidationError(BadRequestError):
    """A 400 carrying every violated field, not just the first one."""

    def __init__(self, errors: list[dict[str, str]], detail: str = "Validation failed"):
        super().__init__(detail=detail)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


class ConflictError(MedContractException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class StorageError(MedContractException):
    """Metadata exists but the stored file is gone."""

    def __init__(self, detail: str = "File not found on server"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


def field_errors(errors: Iterable[dict[str, Any]], prefixed: bool = False) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into `{field, message}` pairs.

    FastAPI prefixes request errors with "body"/"query"/"form"; pass
    `prefixed=True` to drop it.
    """
    result = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        if prefixed and len(loc) > 1:
            loc = loc[1:]
        result.append({
            "field": ".".join(str(p) for p in loc) or "body",
            "message": err.get("msg", "Invalid value"),
        })
    return result


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        body: dict[str, Any] = {"message": str(exc.detail)}
        if isinstance(exc, ValidationError):
            body["errors"] = exc.errors
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"message": "Validation failed", "errors": field_errors(exc.errors(), prefixed=True)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StaleDataError)
    async def stale_data_handler(request: Request, exc: StaleDataError):
        logger.warning("Concurrent update rejected on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"message": "The resource was modified by another request, reload and retry"},
            status_code=status.HTTP_409_CONFLICT,
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(
            {"message": "The request conflicts with the current state of the resource"},
            status_code=status.HTTP_409_CONFLICT,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"message": "Server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
