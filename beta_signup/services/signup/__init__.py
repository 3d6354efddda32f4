"""Tester signup workflow."""

from beta_signup.services.signup.signup_state_machine import (
    SignupResult,
    SignupService,
    SignupStage,
    derive_stage,
    secret_matches,
)

__all__ = ["SignupResult", "SignupService", "SignupStage", "derive_stage", "secret_matches"]
