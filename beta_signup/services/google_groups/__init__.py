"""Google Groups API client."""

from beta_signup.services.google_groups.google_groups_client import (
    GoogleGroupsClient,
    GroupApiError,
    GroupErrorType,
    GroupValidationResult,
    google_groups_client,
    is_consumer_group,
)

__all__ = [
    "GoogleGroupsClient",
    "GroupApiError",
    "GroupErrorType",
    "GroupValidationResult",
    "google_groups_client",
    "is_consumer_group",
]
