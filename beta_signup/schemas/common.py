"""Common schemas for errors and simple responses"""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error detail structure"""
    code: str
    message: str
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: ErrorDetail


class MessageResponse(BaseModel):
    """Simple message response"""
    message: str
