"""Problem Details (RFC 9457) exceptions and handlers for the booking API."""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .database import utcnow

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://norsemanadventure.no/problems"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )
        # HTTPException stores the whole body as detail; keep the message text
        self.detail = detail


class ValidationError(ProblemDetailsException):
    """Malformed input; never retryable."""

    def __init__(
        self,
        detail: str = "Ugyldig skjemadata.",
        errors: Optional[list[Dict[str, Any]]] = None,
        instance: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {"code": "VALIDATION_FAILED", "retryable": False}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Exception for missing or rejected credentials."""

    def __init__(
        self,
        detail: str = "Unauthorized",
        instance: Optional[str] = None,
        scheme: str = "Bearer",
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": scheme},
        )


class NotFoundError(ProblemDetailsException):
    """Exception for a missing tour or booking."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions: Dict[str, Any] = {
            "code": "NOT_FOUND",
            "retryable": False,
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class TourNotFoundError(NotFoundError):
    """Raised when a tour id does not resolve to a tour."""

    def __init__(self, tour_id: str):
        super().__init__(
            resource_type="tour",
            resource_id=tour_id,
            detail="Fant ikke turen. Prøv igjen senere.",
        )


class BookingNotFoundError(NotFoundError):
    """Raised when a booking id does not resolve to a booking."""

    def __init__(self, booking_id: str):
        super().__init__(
            resource_type="booking",
            resource_id=booking_id,
            detail="Fant ikke bestillingen.",
        )


class CapacityExceededError(ProblemDetailsException):
    """
    Requested seats exceed the tour's remaining capacity.

    Distinguishes a sold-out tour, where the caller should be offered the
    waitlist, from a partially available one.
    """

    def __init__(self, tour_id: str, requested_seats: int, remaining_seats: int):
        sold_out = remaining_seats <= 0
        if sold_out:
            detail = "Denne turen er dessverre utsolgt. Du kan sette deg på venteliste."
        else:
            detail = f"Det er bare {remaining_seats} plasser igjen."

        super().__init__(
            status_code=409,
            title="Capacity Exceeded",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/capacity-exceeded",
            extensions={
                "code": "SOLD_OUT" if sold_out else "INSUFFICIENT_SEATS",
                "retryable": False,
                "tour_id": tour_id,
                "requested_seats": requested_seats,
                "remaining_seats": max(0, remaining_seats),
                "waitlist_available": sold_out,
            },
        )


class StoreUnavailableError(ProblemDetailsException):
    """Transient failure talking to the booking store; safe to retry."""

    def __init__(
        self,
        detail: str = "Kunne ikke hente bookinginformasjon. Prøv igjen senere.",
        operation: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {
            "code": "STORE_UNAVAILABLE",
            "retryable": True,
            "error_id": str(uuid.uuid4()),
        }
        if operation:
            extensions["operation"] = operation

        super().__init__(
            status_code=500,
            title="Booking Store Failure",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/store-unavailable",
            extensions=extensions,
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI request validation failures as field-level 400 problems."""
    errors = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    problem = ValidationError(
        detail=errors[0]["message"] if errors else "Ugyldig skjemadata.",
        errors=errors,
        instance=str(request.url.path),
    )
    return await problem_details_handler(request, problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path},
    )

    problem_details = {
        "type": f"{PROBLEM_BASE_URI}/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": utcnow().isoformat() + "Z",
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
