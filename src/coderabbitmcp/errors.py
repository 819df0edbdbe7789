"""Error taxonomy for coderabbitmcp.

Parsing never raises: malformed markdown degrades to default field values.
Everything else that can go wrong falls into one of the classes below.
"""

from __future__ import annotations


class CodeRabbitMCPError(Exception):
    """Base class for all coderabbitmcp failures."""


class InputValidationError(CodeRabbitMCPError):
    """Raised when caller input is rejected before any remote call."""


class NotFoundError(CodeRabbitMCPError):
    """Raised when a review, comment or pull request does not exist in the searched scope."""


class NotAuthorizedError(CodeRabbitMCPError):
    """Raised when a located entity was not authored by the CodeRabbit bot."""


class RemoteFailureError(CodeRabbitMCPError):
    """Raised when the remote repository (network, rate limit, permissions) fails."""


class UnsupportedCapabilityError(CodeRabbitMCPError):
    """Raised when the platform cannot perform an optional action (e.g. conversation resolution)."""
