"""
Error types and FastAPI exception handlers.

Service clients raise UpstreamError; routers translate it into a GatewayError
carrying the operation-specific error label that callers see.
"""
import logging
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


DUPLICATE_CONTACT_MESSAGE = (
    "A contact with this email address already exists in HubSpot. "
    "This form is only for creating new contacts. Please use the existing "
    "contact in HubSpot to update information or create deals."
)

TRIAL_EXISTS_MESSAGE = (
    "This contact already has a trial deal. Only one trial deal is allowed "
    "per contact."
)


class UpstreamError(Exception):
    """Non-2xx response or network failure talking to HubSpot or the AI provider."""

    def __init__(self, status_code: Optional[int], details: Any):
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.details = details
        super().__init__(f"Upstream error {self.status_code}: {details}")


def response_details(response: httpx.Response) -> Any:
    """Upstream response body: decoded JSON when possible, text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text


class GatewayError(Exception):
    """Error reported to the caller as {"error", "message"?, "details"}."""

    def __init__(
        self,
        error: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Any = None,
        message: Optional[str] = None,
    ):
        self.error = error
        self.status_code = status_code
        self.details = details
        self.message = message
        super().__init__(error)

    @classmethod
    def from_upstream(cls, error: str, exc: UpstreamError) -> "GatewayError":
        return cls(error, status_code=exc.status_code, details=exc.details)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        body["details"] = self.details
        return body


class DuplicateContactError(GatewayError):
    """HubSpot refused a contact create because the email is already taken."""

    def __init__(self, details: Any = None):
        super().__init__(
            "Contact already exists",
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            message=DUPLICATE_CONTACT_MESSAGE,
        )


class TrialAlreadyExistsError(GatewayError):
    """A second trial deal was requested for a contact that already has one."""

    def __init__(self, existing_deal_ids: list):
        super().__init__(
            "Trial already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"existingDealIds": existing_deal_ids},
            message=TRIAL_EXISTS_MESSAGE,
        )


async def gateway_exception_handler(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": str(exc)},
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register gateway exception handlers on the application."""
    app.add_exception_handler(GatewayError, gateway_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
