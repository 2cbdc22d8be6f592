# File: resolver/schemas/auth.py

from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field

UserTypeName = Literal["resident", "authority"]

class SignUpIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=512)
    username: str = Field(min_length=2, max_length=120)
    user_type: UserTypeName = "resident"
    authority_code: Optional[str] = None

class SignInIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=512)

class RefreshIn(BaseModel):
    refresh_token: str

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    user_type: UserTypeName
