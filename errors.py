"""Exception hierarchy for Scaffold bot."""

from __future__ import annotations

from typing import Any, Optional


class ScaffoldError(Exception):
    """Base error type."""

    kind = "scaffold_error"


class ValidationError(ScaffoldError):
    """Raised when user-supplied options fail validation."""

    kind = "validation"


class ProtocolTimeoutError(ScaffoldError):
    """Raised when the acknowledgment window elapsed before we replied."""

    kind = "protocol_timeout"


class InteractionStateError(ScaffoldError):
    """Raised when an invocation is acknowledged or finalized out of order."""

    kind = "interaction_state"


class StructuralConstraintError(ScaffoldError):
    """Raised when a resource cannot exist where it was requested."""

    kind = "structural_constraint"


class AlreadyExistsError(ScaffoldError):
    """Raised when the requested resource or attachment already exists."""

    kind = "already_exists"


class ResourceCreationError(ScaffoldError):
    """Raised when Discord rejects a resource creation call."""

    kind = "resource_creation"

    def __init__(
        self,
        resource_type: str,
        original: Optional[BaseException] = None,
        message: Optional[str] = None,
    ):
        self.resource_type = resource_type
        self.original = original
        detail = message or (str(original) if original else "unknown error")
        super().__init__(f"Failed to create {resource_type}: {detail}")


class GrantFailure(ScaffoldError):
    """Raised when a freshly created role could not be added to a member."""

    kind = "grant_failure"

    def __init__(self, member: Any, original: Optional[BaseException] = None):
        self.member = member
        self.original = original
        detail = str(original) if original else "unknown error"
        super().__init__(f"Failed to grant role to {member}: {detail}")
