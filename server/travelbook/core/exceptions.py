"""
Problem Details (RFC 9457) errors and the handlers that render them.

Each subclass fixes its status, title and problem type; call sites only
supply the occurrence-specific detail and any extension members.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://travelbook.example.com/problems"
PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem_type(slug: Optional[str], status_code: int) -> str:
    if slug:
        return f"{PROBLEM_BASE_URI}/{slug}"
    return f"about:blank#{status_code}"


def _utc_timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


class ProblemDetailsException(HTTPException):
    """
    An HTTP error carried as a Problem Details document.

    The document is built once and exposed as `problem_details`; extension
    members sit beside the standard `type`, `title`, `status`, `detail`
    and `instance` members.
    """

    status: ClassVar[int] = 500
    problem_title: ClassVar[str] = "Internal Server Error"
    slug: ClassVar[Optional[str]] = None
    default_detail: ClassVar[Optional[str]] = None
    default_headers: ClassVar[Optional[Dict[str, str]]] = None

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        code = status_code or self.status
        self.title = title or self.problem_title
        self.instance = instance
        self.extensions = {k: v for k, v in (extensions or {}).items() if v is not None}

        document: Dict[str, Any] = {
            "type": _problem_type(self.slug, code),
            "title": self.title,
            "status": code,
        }
        text = detail or self.default_detail
        if text:
            document["detail"] = text
        if instance:
            document["instance"] = instance
        document.update(self.extensions)
        self.problem_details = document

        super().__init__(
            status_code=code,
            detail=document,
            headers=headers or self.default_headers,
        )


class ValidationError(ProblemDetailsException):
    """Request data was well-formed but not acceptable."""

    status = 400
    problem_title = "Validation Error"
    slug = "validation-error"
    default_detail = "The request data failed validation"

    def __init__(self, detail: Optional[str] = None, errors: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(detail, extensions={"errors": errors or None}, **kwargs)


class AuthenticationError(ProblemDetailsException):
    status = 401
    problem_title = "Authentication Required"
    slug = "authentication-required"
    default_detail = "Authentication credentials are required"
    default_headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(ProblemDetailsException):
    status = 403
    problem_title = "Access Forbidden"
    slug = "access-forbidden"
    default_detail = "Insufficient permissions to access this resource"

    def __init__(self, detail: Optional[str] = None, required_role: Optional[str] = None, **kwargs):
        super().__init__(detail, extensions={"required_role": required_role}, **kwargs)


class NotFoundError(ProblemDetailsException):
    """A user, package or booking that does not exist (or whose id is malformed)."""

    status = 404
    problem_title = "Resource Not Found"
    slug = "resource-not-found"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        **kwargs,
    ):
        if detail is None:
            subject = f"{resource_type} with ID '{resource_id}'" if resource_id else resource_type
            detail = f"The requested {subject} could not be found"
        super().__init__(
            detail,
            extensions={"resource_type": resource_type, "resource_id": resource_id},
            **kwargs,
        )


class ConflictError(ProblemDetailsException):
    status = 409
    problem_title = "Resource Conflict"
    slug = "resource-conflict"
    default_detail = "The request conflicts with the current state of the resource"

    def __init__(
        self,
        detail: Optional[str] = None,
        conflicting_resource: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        super().__init__(detail, extensions={"conflicting_resource": conflicting_resource}, **kwargs)


class PayloadTooLargeError(ProblemDetailsException):
    """An uploaded file is over its byte limit."""

    status = 413
    problem_title = "Payload Too Large"
    slug = "payload-too-large"

    def __init__(self, size: int, limit: int, filename: Optional[str] = None, **kwargs):
        detail = f"Uploaded file is {size} bytes, the limit is {limit} bytes"
        if filename:
            detail = f"{filename}: {detail}"
        super().__init__(detail, extensions={"size_bytes": size, "limit_bytes": limit}, **kwargs)


class ServiceUnavailableError(ProblemDetailsException):
    """A feature depends on configuration or a service that is missing."""

    status = 503
    problem_title = "Service Unavailable"
    slug = "service-unavailable"


class InternalServerError(ProblemDetailsException):
    status = 500
    problem_title = "Internal Server Error"
    slug = "internal-server-error"
    default_detail = "An unexpected error occurred while processing the request"

    def __init__(self, detail: Optional[str] = None, error_id: Optional[str] = None, **kwargs):
        super().__init__(
            detail,
            extensions={"error_id": error_id or str(uuid.uuid4()), "timestamp": _utc_timestamp()},
            **kwargs,
        )


def _problem_response(status_code: int, document: Dict[str, Any], headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=document,
        headers=headers,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    return _problem_response(exc.status_code, exc.problem_details, exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render FastAPI's schema validation failures as a 422 problem.

    Each failure becomes a `violations` entry with a dotted `path`
    (e.g. `body.packageId`) and pydantic's message.
    """
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    document = {
        "type": _problem_type("request-validation", 422),
        "title": "Unprocessable Request",
        "status": 422,
        "detail": "The request did not match the expected schema",
        "instance": request.url.path,
        "violations": violations,
    }
    return _problem_response(422, document)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unhandled error under a fresh error id and answer with a 500 problem."""
    problem = InternalServerError(instance=request.url.path)
    error_id = problem.problem_details["error_id"]

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )

    return _problem_response(500, problem.problem_details)
