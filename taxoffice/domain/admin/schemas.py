"""Admin domain schemas - Pydantic models for setup and login"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_username


class AdminSetupRequest(BaseModel):
    """First-run admin account creation"""

    username: str
    email: str
    password: str = Field(min_length=8, max_length=128)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class SetupStatusResponse(BaseModel):
    setup_required: bool


class EmailQueueStatsResponse(BaseModel):
    by_status: dict[str, int]
    total: int
    failed_last_24h: int


class EmailRetryRequest(BaseModel):
    limit: int = Field(10, ge=1, le=100)


class EmailRetryResponse(BaseModel):
    reset: int
