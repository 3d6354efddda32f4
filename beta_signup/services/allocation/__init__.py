"""Promotional code allocation."""

from beta_signup.services.allocation.allocation_engine import (
    AllocationEngine,
    AllocationResult,
    AllocationStatus,
)

__all__ = ["AllocationEngine", "AllocationResult", "AllocationStatus"]
