"""App schemas for registration and owner views"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from beta_signup.schemas.promotional_code import PromotionalCodeResponse
from beta_signup.schemas.tester import TesterResponse


class AppRegisterRequest(BaseModel):
    """Register an app for beta distribution"""
    app_name: str = Field(min_length=1, max_length=255)
    google_group_email: EmailStr
    play_store_url: str = Field(min_length=1, max_length=500)
    icon_url: str | None = Field(default=None, max_length=500)
    promotional_codes: list[str] = Field(default_factory=list)
    # Pasted or uploaded code list, comma or newline separated
    promotional_codes_text: str | None = None
    manage_automatically: bool = False


class AppPublicResponse(BaseModel):
    """What testers see about an app"""
    id: str
    app_name: str
    google_group_email: str
    play_store_url: str
    icon_url: str | None
    is_consumer_group: bool = False

    class Config:
        from_attributes = True


class AppResponse(AppPublicResponse):
    """Owner view of an app"""
    owner_email: str
    manage_group_automatically: bool
    is_setup_complete: bool
    created_at: datetime


class AppStatsResponse(BaseModel):
    total_testers: int
    joined_group: int
    codes_assigned: int
    total_codes: int
    redeemed_codes: int
    available_codes: int

    class Config:
        from_attributes = True


class AppOverviewResponse(BaseModel):
    """Owner dashboard data"""
    app: AppResponse
    complete_url: str
    stats: AppStatsResponse
    testers: list[TesterResponse]
    promotional_codes: list[PromotionalCodeResponse]


class AppRegisterResponse(BaseModel):
    app: AppResponse
    complete_url: str
    codes_added: int
