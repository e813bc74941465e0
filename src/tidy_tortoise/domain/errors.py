"""Error taxonomy shared by the compiler, the cache and the mutation layer.

Every error carries a human readable ``message`` and a machine checkable ``kind``
so the transport layer can map it without inspecting the message text.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PlannerError(Exception):
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(PlannerError):
    """Malformed or out-of-range input, addressed by field path."""

    kind = "validation"

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Collapse a pydantic ``ValidationError`` into a single field-addressed error."""

        errors = exc.errors()
        if not errors:
            return cls(str(exc))
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        return cls(first.get("msg", "Invalid value"), field=field)


class InvalidFilterError(ValidationError):
    """Raised by the filter compiler; never touches the record store."""


class InvariantError(ValidationError):
    kind = "invariant"


class NotFoundError(PlannerError):
    kind = "not_found"


class ConflictError(PlannerError):
    kind = "conflict"


class TransportError(PlannerError):
    kind = "transport"


class UnauthenticatedError(PlannerError):
    kind = "unauthenticated"
