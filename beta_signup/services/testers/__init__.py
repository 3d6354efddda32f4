"""Tester registry storage."""

from beta_signup.services.testers.tester_registry import TesterRegistry, TesterAlreadyExistsError

__all__ = ["TesterRegistry", "TesterAlreadyExistsError"]
