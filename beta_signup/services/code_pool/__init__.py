"""Promotional code pool storage."""

from beta_signup.services.code_pool.code_pool_store import (
    CodePoolStore,
    PromotionalCodeNotFoundError,
)

__all__ = ["CodePoolStore", "PromotionalCodeNotFoundError"]
