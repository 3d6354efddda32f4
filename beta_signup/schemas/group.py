"""Google Group validation schemas"""

from pydantic import BaseModel, EmailStr

from beta_signup.services.google_groups import GroupErrorType


class GroupValidationRequest(BaseModel):
    group_email: EmailStr


class GroupValidationResponse(BaseModel):
    can_manage: bool
    allows_external_members: bool
    error: str | None = None
    error_type: GroupErrorType | None = None

    class Config:
        from_attributes = True
