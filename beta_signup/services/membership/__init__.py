"""Google Group membership orchestration."""

from beta_signup.services.membership.membership_orchestrator import (
    GroupType,
    MembershipOrchestrator,
    MembershipOutcome,
    OwnerCredential,
)

__all__ = ["GroupType", "MembershipOrchestrator", "MembershipOutcome", "OwnerCredential"]
