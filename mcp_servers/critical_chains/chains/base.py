"""
Shared errors for the critical request chain engine.

Provides:
- AuditError: Structured error with a reason and an actionable suggestion
- MainResourceNotFoundError: The page's main document request is missing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

AUDIT_ID = "critical-request-chains"


@dataclass
class AuditError(Exception):
    """Structured audit failure (surfaced to callers as-is)."""

    audit: str
    action: str
    reason: str
    suggestion: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.audit}] {self.action} failed: {self.reason}. Suggestion: {self.suggestion}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "audit": self.audit,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


@dataclass
class MainResourceNotFoundError(AuditError):
    """No request matches the audited page and none started at navigation start."""

    audit: str = AUDIT_ID
    action: str = "resolve_main_resource"
    reason: str = "Unable to identify the main resource"
    suggestion: str = "Ensure the devtools log contains the main document request for the audited URL"


__all__ = ["AUDIT_ID", "AuditError", "MainResourceNotFoundError"]
