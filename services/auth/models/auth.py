"""Modelos Pydantic para autenticación"""
from pydantic import BaseModel, Field
from typing import Optional

from shared.auth.supabase_client import AuthSession
from services.profiles.models.profile import ProfileResponse


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class SignUpRequest(SignInRequest):
    full_name: str = Field(..., min_length=1)


class SignUpResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    session: Optional[AuthSession] = None  # None si falta confirmar el email
    profile: ProfileResponse


class MeResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    profile: ProfileResponse
