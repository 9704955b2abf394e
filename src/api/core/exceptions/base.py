"""Exception hierarchy and global exception handlers for the FastAPI application."""

import traceback

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..messages import MessageCode, get_default_message
from src.utils.logger import get_logger

logger = get_logger(__name__)


class MarketplaceException(Exception):
    """Base exception for the marketplace API with unified message codes."""

    def __init__(
        self,
        message_code: MessageCode,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict | None = None,
        headers: dict | None = None,
    ):
        self.message_code = message_code
        self.status_code = status_code
        self.message: str = get_default_message(message_code)
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_response_dict(self) -> dict:
        """Convert exception to API response format."""
        return {
            "message_code": self.message_code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(MarketplaceException):
    def __init__(
        self,
        message_code: MessageCode = MessageCode.NOT_FOUND,
        details: dict | None = None,
    ):
        super().__init__(message_code, status.HTTP_404_NOT_FOUND, details)


class ForbiddenError(MarketplaceException):
    def __init__(
        self,
        message_code: MessageCode = MessageCode.FORBIDDEN,
        details: dict | None = None,
    ):
        super().__init__(message_code, status.HTTP_403_FORBIDDEN, details)


class InvalidAmountError(MarketplaceException):
    def __init__(self, details: dict | None = None):
        super().__init__(
            MessageCode.INVALID_AMOUNT, status.HTTP_400_BAD_REQUEST, details
        )


class InsufficientCreditsError(MarketplaceException):
    """Raised when an account cannot cover a charge. Nothing was charged."""

    def __init__(self, required: int, available: int, details: dict | None = None):
        self.required = required
        self.available = available
        super().__init__(
            MessageCode.INSUFFICIENT_CREDITS,
            status.HTTP_402_PAYMENT_REQUIRED,
            {
                "required": required,
                "available": available,
                "charged": False,
                **(details or {}),
            },
        )


class UpstreamUnavailableError(MarketplaceException):
    """Raised when an agent webhook could not complete. Nothing was charged."""

    def __init__(self, details: dict | None = None):
        super().__init__(
            MessageCode.UPSTREAM_UNAVAILABLE,
            status.HTTP_502_BAD_GATEWAY,
            {"charged": False, **(details or {})},
        )


class InternalInconsistencyError(MarketplaceException):
    """Raised when stored balances or earnings disagree with the ledger."""

    def __init__(self, details: dict | None = None):
        super().__init__(
            MessageCode.INTERNAL_INCONSISTENCY,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            details,
        )


def _serializable_errors(exc: RequestValidationError | ValidationError) -> list[dict]:
    try:
        serializable_errors = []
        for error in exc.errors():
            error_dict = dict(error)
            if "input" in error_dict and hasattr(error_dict["input"], "isoformat"):
                error_dict["input"] = error_dict["input"].isoformat()
            # ValueError instances from validators are not JSON serializable
            if "ctx" in error_dict:
                error_dict["ctx"] = {
                    key: str(value) for key, value in error_dict["ctx"].items()
                }
            serializable_errors.append(error_dict)
        return serializable_errors
    except Exception:
        return [{"msg": "Validation error occurred", "type": "validation_error"}]


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""

    @app.exception_handler(MarketplaceException)
    async def marketplace_exception_handler(
        request: Request, exc: MarketplaceException
    ) -> JSONResponse:
        """Handle custom marketplace exceptions."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Marketplace exception",
            path=request.url.path,
            method=request.method,
            message_code=exc.message_code.value,
            status_code=exc.status_code,
            details=exc.details,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Handle FastAPI HTTP exceptions."""
        logger.warning(
            f"HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message_code": MessageCode.BAD_REQUEST
                if exc.status_code < 500
                else MessageCode.INTERNAL_SERVER_ERROR,
                "message": str(exc.detail),
                "details": {"description": "HTTP exception occurred"},
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle Starlette HTTP exceptions."""
        logger.warning(
            f"Starlette HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        message_code = (
            MessageCode.NOT_FOUND
            if exc.status_code == status.HTTP_404_NOT_FOUND
            else MessageCode.INTERNAL_ERROR
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message_code": message_code,
                "message": str(exc.detail),
                "details": {"description": "HTTP exception occurred"},
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        logger.warning(
            "Validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message_code": MessageCode.INVALID_INPUT,
                "message": get_default_message(MessageCode.INVALID_INPUT),
                "details": {
                    "description": "Request validation failed",
                    "validation_errors": _serializable_errors(exc),
                },
            },
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        logger.warning(
            "Pydantic validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message_code": MessageCode.INVALID_INPUT,
                "message": get_default_message(MessageCode.INVALID_INPUT),
                "details": {
                    "description": "Response or domain model validation failed",
                    "validation_errors": _serializable_errors(exc),
                },
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        """Handle SQLAlchemy database errors."""
        logger.error(
            f"Database error: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
        )

        # Duplicate ledger references and sequence numbers land here; the
        # request session rolls back, so nothing from the request was applied
        if isinstance(exc, IntegrityError):
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "message_code": MessageCode.CONFLICT,
                    "message": get_default_message(MessageCode.CONFLICT),
                    "details": {"applied": False},
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Database error occurred",
                "details": {"database_error": "Internal database error"},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        if isinstance(exc, MarketplaceException):
            return await marketplace_exception_handler(request, exc)

        logger.error(
            f"Unhandled exception: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Internal server error",
                "details": {"error_type": type(exc).__name__},
            },
        )
