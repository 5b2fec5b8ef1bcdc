"""Modelos Pydantic para perfiles"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ProfileResponse(BaseModel):
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, profile) -> "ProfileResponse":
        return cls(
            id=str(profile.id),
            username=profile.username,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url,
            is_admin=bool(profile.is_admin),
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
