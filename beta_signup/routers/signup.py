"""Tester-facing signup router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from beta_signup.routers.apps import to_public_app
from beta_signup.routers.dependencies import get_signup_service
from beta_signup.schemas import (
    ErrorResponse,
    SignupPageResponse,
    SignupRequest,
    SignupResponse,
    TesterResponse,
    TesterStatusResponse,
)
from beta_signup.services.firebase import AuthenticatedUser, get_current_user, get_optional_user
from beta_signup.services.firebase.firebase_auth import requested_path
from beta_signup.services.signup import SignupService

router = APIRouter(
    prefix="/signup",
    tags=["Signup"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


@router.get("/{app_id}", response_model=SignupPageResponse)
async def get_signup_page(
    app_id: str,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    signup_service: SignupService = Depends(get_signup_service),
):
    """
    App details plus the visitor's current signup stage. Never changes state.
    """
    app = await signup_service.app_service.get_app(app_id)
    result = await signup_service.describe(app, user.email if user else None)
    return SignupPageResponse(
        app=to_public_app(app),
        signup=SignupResponse.model_validate(result),
    )


@router.post("/{app_id}", response_model=SignupResponse)
async def submit_signup(
    app_id: str,
    http_request: Request,
    request: Optional[SignupRequest] = None,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    signup_service: SignupService = Depends(get_signup_service),
):
    """
    Create or advance the caller's signup.

    Workspace groups: the tester is added to the group and receives a code
    in one step. Consumer groups: the tester joins manually and sends
    has_joined_group=true; a sign-in is required before any code is handed out.
    """
    result = await signup_service.submit_signup(
        app_id,
        user.email if user else None,
        claimed_joined=request.has_joined_group if request else False,
        redirect_to=requested_path(http_request),
    )
    return SignupResponse.model_validate(result)


@router.post("/{app_id}/complete", response_model=SignupResponse)
async def complete_signup(
    app_id: str,
    http_request: Request,
    s: Optional[str] = Query(default=None, description="Per-app secret from the group welcome message"),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    signup_service: SignupService = Depends(get_signup_service),
):
    """
    Finish signup through the link in the Google Group welcome message.
    """
    result = await signup_service.complete_via_secret_link(
        app_id,
        s,
        user.email if user else None,
        redirect_to=requested_path(http_request),
    )
    return SignupResponse.model_validate(result)


@router.get("/{app_id}/status", response_model=TesterStatusResponse)
async def get_tester_status(
    app_id: str,
    email: Optional[str] = Query(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    signup_service: SignupService = Depends(get_signup_service),
):
    """
    Signup record of the caller, or of any tester when the caller owns the app.
    """
    target = email or user.email
    if target.strip().lower() != user.email.strip().lower():
        await signup_service.app_service.get_owned_app(app_id, user.email)

    tester = await signup_service.get_tester_status(app_id, target)
    return TesterStatusResponse(
        app_id=app_id,
        tester=TesterResponse.model_validate(tester) if tester else None,
    )
