"""App registration and owner administration router"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from beta_signup.models import App
from beta_signup.routers.dependencies import get_app_service, get_groups_client
from beta_signup.schemas import (
    AddCodesRequest,
    AddCodesResponse,
    AppOverviewResponse,
    AppPublicResponse,
    AppRegisterRequest,
    AppRegisterResponse,
    AppResponse,
    AppStatsResponse,
    ErrorResponse,
    GroupValidationRequest,
    GroupValidationResponse,
    MessageResponse,
    PromotionalCodeResponse,
    TesterResponse,
)
from beta_signup.services.apps import AppService
from beta_signup.services.firebase import (
    AuthenticatedUser,
    DelegatedCredential,
    get_current_user,
    get_delegated_credential,
)
from beta_signup.services.google_groups import GoogleGroupsClient, GroupErrorType, is_consumer_group
from beta_signup.utils.code_list_utils import parse_promotional_codes

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Apps"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def to_public_app(app: App) -> AppPublicResponse:
    return AppPublicResponse(
        id=app.id,
        app_name=app.app_name,
        google_group_email=app.google_group_email,
        play_store_url=app.play_store_url,
        icon_url=app.icon_url,
        is_consumer_group=is_consumer_group(app.google_group_email),
    )


def to_owner_app(app: App) -> AppResponse:
    return AppResponse(
        **to_public_app(app).model_dump(),
        owner_email=app.owner_email,
        manage_group_automatically=app.manage_group_automatically,
        is_setup_complete=app.is_setup_complete,
        created_at=app.created_at,
    )


@router.post("/apps", response_model=AppRegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_app(
    request: AppRegisterRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    credential: Optional[DelegatedCredential] = Depends(get_delegated_credential),
    app_service: AppService = Depends(get_app_service),
):
    """
    Register an Android app and its initial promotional code pool.

    Workspace groups are checked with the owner's Google credential
    (X-Google-Access-Token header) before the app is created.
    """
    codes = list(request.promotional_codes)
    if request.promotional_codes_text:
        codes.extend(parse_promotional_codes(request.promotional_codes_text))

    app = await app_service.register_app(
        owner_email=user.email,
        app_name=request.app_name,
        google_group_email=request.google_group_email,
        play_store_url=request.play_store_url,
        icon_url=request.icon_url,
        promotional_codes=codes,
        manage_automatically=request.manage_automatically,
        access_token=credential.access_token if credential else None,
        refresh_token=credential.refresh_token if credential else None,
    )
    total_codes, _ = await app_service.code_pool.count_codes(app.id)

    return AppRegisterResponse(
        app=to_owner_app(app),
        complete_url=app_service.complete_url(app),
        codes_added=total_codes,
    )


@router.get("/apps/{app_id}", response_model=AppOverviewResponse)
async def get_app_overview(
    app_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    app_service: AppService = Depends(get_app_service),
):
    """
    Owner dashboard: testers, codes and statistics.
    """
    overview = await app_service.get_overview(app_id, user.email)
    return AppOverviewResponse(
        app=to_owner_app(overview.app),
        complete_url=overview.complete_url,
        stats=AppStatsResponse.model_validate(overview.stats),
        testers=[TesterResponse.model_validate(t) for t in overview.testers],
        promotional_codes=[PromotionalCodeResponse.model_validate(c) for c in overview.promotional_codes],
    )


@router.delete("/apps/{app_id}", response_model=MessageResponse)
async def delete_app(
    app_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    app_service: AppService = Depends(get_app_service),
):
    """
    Delete an app together with its testers and promotional codes.
    """
    await app_service.delete_owned_app(app_id, user.email)
    return MessageResponse(message=f"App {app_id} deleted")


@router.post("/apps/{app_id}/codes", response_model=AddCodesResponse)
async def add_promotional_codes(
    app_id: str,
    request: AddCodesRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    app_service: AppService = Depends(get_app_service),
):
    """
    Append promotional codes to an app's pool. Exact duplicates are dropped.
    """
    codes = list(request.codes)
    if request.text:
        codes.extend(parse_promotional_codes(request.text))

    added = await app_service.add_codes(app_id, user.email, codes)
    return AddCodesResponse(
        message=f"Successfully added {added} promotional codes",
        codes_added=added,
    )


@router.post("/groups/validate", response_model=GroupValidationResponse)
async def validate_group(
    request: GroupValidationRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    credential: Optional[DelegatedCredential] = Depends(get_delegated_credential),
    groups_client: GoogleGroupsClient = Depends(get_groups_client),
):
    """
    Check whether the owner can manage a group and whether it accepts external members.
    """
    if credential is None and not is_consumer_group(request.group_email):
        return GroupValidationResponse(
            can_manage=False,
            allows_external_members=False,
            error="A Google access token is required to validate Workspace groups",
            error_type=GroupErrorType.AUTHENTICATION,
        )

    result = await groups_client.validate_group(
        request.group_email, credential.access_token if credential else ""
    )
    logger.info(f"Validated group {request.group_email} for {user.email}: can_manage={result.can_manage}")
    return GroupValidationResponse.model_validate(result)
