"""User and session schemas."""
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str


class TokenResponse(BaseModel):
    token: str
