"""Signup workflow schemas"""

from pydantic import BaseModel

from beta_signup.schemas.app import AppPublicResponse
from beta_signup.services.allocation import AllocationStatus
from beta_signup.services.signup import SignupStage


class SignupRequest(BaseModel):
    """Tester submission; ``has_joined_group`` is the manual-join claim"""
    has_joined_group: bool = False


class SignupResponse(BaseModel):
    app_id: str
    stage: SignupStage
    email: str | None = None
    promotional_code: str | None = None
    has_joined_group: bool = False
    already_existing: bool = False
    allocation_status: AllocationStatus | None = None
    retry_suggested: bool = False

    class Config:
        from_attributes = True


class SignupPageResponse(BaseModel):
    """App info plus the visitor's current stage"""
    app: AppPublicResponse
    signup: SignupResponse
