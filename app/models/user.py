from pydantic import BaseModel, EmailStr, ConfigDict, field_validator
from typing import Optional


class UserSyncRequest(BaseModel):
    fullName: Optional[str] = None

    @field_validator('fullName')
    def validate_full_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Full name cannot be empty')
        return v.strip() if v else v


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
