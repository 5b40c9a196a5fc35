from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List
from datetime import datetime

class UserBase(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)

class User(BaseModel):
    id: int
    name: str
    email: EmailStr
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UnifiedUser(User):
    is_admin: bool = False
    roles: List[str] = []

class AuthResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: UnifiedUser
