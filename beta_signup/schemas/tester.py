"""Tester schemas"""

from datetime import datetime

from pydantic import BaseModel


class TesterResponse(BaseModel):
    email: str
    has_joined_group: bool
    promotional_code: str | None
    joined_at: datetime

    class Config:
        from_attributes = True


class TesterStatusResponse(BaseModel):
    app_id: str
    tester: TesterResponse | None
