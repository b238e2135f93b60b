"""Custom exceptions for LaunchOS."""

from typing import Any

from fastapi import status


class LaunchOSError(Exception):
    """Base exception for LaunchOS."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(LaunchOSError):
    """Malformed or out-of-range user input."""

    status_code = 422


class InvalidArgument(LaunchOSError):
    """A required request argument is missing or empty."""

    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(LaunchOSError):
    """No valid caller credential was presented."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(LaunchOSError):
    """The caller lacks the privilege the operation requires."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(LaunchOSError):
    """A referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ProjectNotFoundError(NotFound):
    """Project not found."""

    def __init__(self, project_id: str):
        super().__init__("Project not found", {"project_id": str(project_id)})


class DeploymentNotFoundError(NotFound):
    """Deployment not found."""

    def __init__(self, deployment_id: str):
        super().__init__("Deployment not found", {"deployment_id": str(deployment_id)})


class Conflict(LaunchOSError):
    """A uniqueness constraint would be violated."""

    status_code = status.HTTP_409_CONFLICT


class SubdomainTakenError(Conflict):
    """Another project already owns the subdomain."""

    def __init__(self, subdomain: str):
        super().__init__(
            "This subdomain is already taken",
            {"field": "subdomain", "subdomain": subdomain},
        )


class DeploymentCreateError(LaunchOSError):
    """The deployment record could not be created."""

    def __init__(self, reason: str | None = None):
        details = {"reason": reason} if reason else {}
        super().__init__("Failed to create deployment", details)


class InvalidStatusTransition(LaunchOSError):
    """A deployment was asked to move against its lifecycle."""

    def __init__(self, deployment_id: str, current: str, requested: str):
        super().__init__(
            f"Cannot move deployment {deployment_id} from '{current}' to '{requested}'",
            {"deployment_id": str(deployment_id), "current": current, "requested": requested},
        )


class PipelineFault(LaunchOSError):
    """A deployment pipeline run failed unexpectedly."""

    def __init__(self, deployment_id: str, message: str):
        super().__init__(
            f"Pipeline fault for deployment {deployment_id}: {message}",
            {"deployment_id": str(deployment_id)},
        )


class UpstreamError(LaunchOSError):
    """The external AI service failed."""

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        upstream_body: str | None = None,
    ):
        details: dict[str, Any] = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if upstream_body:
            details["upstream_body"] = upstream_body
        super().__init__(message, details)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class RateLimited(UpstreamError):
    """The external AI service is rate limiting; retry later."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, upstream_body: str | None = None):
        super().__init__(
            "Rate limit exceeded. Please try again later.",
            upstream_status=status.HTTP_429_TOO_MANY_REQUESTS,
            upstream_body=upstream_body,
        )


class QuotaExceeded(UpstreamError):
    """The AI workspace has run out of credits."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, upstream_body: str | None = None):
        super().__init__(
            "Payment required. Please add credits to your AI workspace.",
            upstream_status=status.HTTP_402_PAYMENT_REQUIRED,
            upstream_body=upstream_body,
        )


class AnalysisParseError(LaunchOSError):
    """The AI service answered, but not with a usable JSON object."""

    def __init__(self, raw_response: str):
        super().__init__(
            "Failed to parse product data from AI response",
            {"raw_response": raw_response[:1000]},
        )
        self.raw_response = raw_response
