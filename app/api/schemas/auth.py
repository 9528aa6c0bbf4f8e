"""
Esquemas Pydantic para operaciones de autenticación.

- Mantiene las validaciones y normalizaciones (p. ej. email en minúsculas).
- Modelos pensados para separar la capa API de la lógica de negocio.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return str(v).strip().lower()


class RefreshPayload(BaseModel):
    refreshToken: Optional[str] = None


# === Response models ===

class UserOut(BaseModel):
    id: str
    email: str
    name: str = ""
    role: str = "staff"


class ProfileOut(UserOut):
    isActive: bool = True
    lastLogin: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class MessageOut(BaseModel):
    success: bool = True
    message: str


class LoginOut(MessageOut):
    user: UserOut
    expiresIn: int


class RefreshOut(MessageOut):
    expiresIn: int


class MeOut(BaseModel):
    success: bool = True
    user: ProfileOut
