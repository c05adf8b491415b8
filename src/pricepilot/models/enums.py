"""
PricePilot Enumerations

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Policy Status (persisted)
# =============================================================================

class PolicyStatus(str, Enum):
    """
    Persisted lifecycle status of a policy.

    active -> eligible | ineligible; only eligible -> claimed. Re-checks may
    move a policy between eligible and ineligible (latest check wins).
    claimed is terminal.
    """
    ACTIVE = "active"
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    CLAIMED = "claimed"

    @property
    def is_terminal(self) -> bool:
        return self is PolicyStatus.CLAIMED

    def can_transition_to(self, target: PolicyStatus) -> bool:
        if target is self:
            return not self.is_terminal
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[PolicyStatus, frozenset[PolicyStatus]] = {
    PolicyStatus.ACTIVE: frozenset({PolicyStatus.ELIGIBLE, PolicyStatus.INELIGIBLE}),
    PolicyStatus.ELIGIBLE: frozenset({PolicyStatus.INELIGIBLE, PolicyStatus.CLAIMED}),
    PolicyStatus.INELIGIBLE: frozenset({PolicyStatus.ELIGIBLE}),
    PolicyStatus.CLAIMED: frozenset(),
}


# =============================================================================
# Claim Phase (in-memory progress)
# =============================================================================

class ClaimPhase(str, Enum):
    """Progress of a check or claim as seen by the coordinator."""
    ACTIVE = "active"
    CHECKING = "checking"
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    CLAIMING = "claiming"
    CLAIMED = "claimed"
    ERROR = "error"           # last operation failed; previous phase kept alongside

    @classmethod
    def from_status(cls, status: PolicyStatus) -> ClaimPhase:
        return cls(status.value)
