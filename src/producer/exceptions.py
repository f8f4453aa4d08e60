"""
Producer Exceptions

Exception classes shared by the store, the remote client and the director.
"""

from typing import Optional


class ProducerError(Exception):
    """Base exception for all producer errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ProducerError):
    """Raised when there's an issue with configuration."""
    pass


# =============================================================================
# STORE ERRORS
# =============================================================================

class InvalidTransitionError(ProducerError):
    """Raised when a scene status change is not allowed by the state machine."""

    def __init__(self, scene_id: str, current: str, target: str):
        super().__init__(
            f"Scene '{scene_id}' cannot move from {current} to {target}",
            {"scene_id": scene_id, "current": current, "target": target},
        )


# =============================================================================
# GENERATION ERRORS
# =============================================================================

class GenerationError(ProducerError):
    """Base class for anything that stops a pipeline from producing an image."""
    pass


class TransportError(GenerationError):
    """Raised when the remote service cannot be reached."""
    pass


class BriaAPIError(GenerationError):
    """Raised when the remote service answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str, url: Optional[str] = None):
        details = {"status_code": status_code}
        if url:
            details["url"] = url
        super().__init__(f"Bria API error ({status_code}): {body[:500]}", details)
        self.status_code = status_code
        self.body = body


class ResponseShapeError(GenerationError):
    """Raised when a response does not have the expected JSON shape."""
    pass


class GenerationFailedError(GenerationError):
    """Raised when the remote job reports a FAILED status."""
    pass


class GenerationTimeoutError(GenerationError):
    """Raised when polling runs out of attempts without a terminal status."""

    def __init__(self, attempts: int, interval: float):
        super().__init__(
            f"Polling timed out after {attempts * interval:.0f}s ({attempts} attempts)",
            {"attempts": attempts, "interval": interval},
        )


class GenerationCancelledError(GenerationError):
    """Raised when a generation is cancelled through its cancel event."""
    pass
