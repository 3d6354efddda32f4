"""Pydantic schemas for request/response validation"""

from beta_signup.schemas.common import ErrorResponse, MessageResponse
from beta_signup.schemas.app import (
    AppRegisterRequest,
    AppRegisterResponse,
    AppPublicResponse,
    AppResponse,
    AppStatsResponse,
    AppOverviewResponse,
)
from beta_signup.schemas.promotional_code import (
    AddCodesRequest,
    AddCodesResponse,
    PromotionalCodeResponse,
)
from beta_signup.schemas.tester import TesterResponse, TesterStatusResponse
from beta_signup.schemas.signup import SignupRequest, SignupResponse, SignupPageResponse
from beta_signup.schemas.group import GroupValidationRequest, GroupValidationResponse

__all__ = [
    # Common
    "ErrorResponse",
    "MessageResponse",
    # App
    "AppRegisterRequest",
    "AppRegisterResponse",
    "AppPublicResponse",
    "AppResponse",
    "AppStatsResponse",
    "AppOverviewResponse",
    # Promotional codes
    "AddCodesRequest",
    "AddCodesResponse",
    "PromotionalCodeResponse",
    # Tester
    "TesterResponse",
    "TesterStatusResponse",
    # Signup
    "SignupRequest",
    "SignupResponse",
    "SignupPageResponse",
    # Groups
    "GroupValidationRequest",
    "GroupValidationResponse",
]
