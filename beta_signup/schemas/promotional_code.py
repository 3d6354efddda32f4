"""Promotional code schemas"""

from datetime import datetime

from pydantic import BaseModel, Field


class PromotionalCodeResponse(BaseModel):
    id: str
    code: str
    created_at: datetime
    redeemed_at: datetime | None
    redeemed_by: str | None

    class Config:
        from_attributes = True


class AddCodesRequest(BaseModel):
    """Codes to append; either as a list, as text, or both"""
    codes: list[str] = Field(default_factory=list)
    text: str | None = None


class AddCodesResponse(BaseModel):
    message: str
    codes_added: int
