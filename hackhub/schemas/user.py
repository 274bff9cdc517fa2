"""User Pydantic schemas — registration, login, profile output."""

from typing import List

from pydantic import BaseModel, EmailStr, Field, field_validator

from hackhub.models.user import RoleEnum


class UserCreate(BaseModel):
    """Fields submitted on registration."""
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(min_length=8)
    roles: List[RoleEnum] = [RoleEnum.PARTICIPANT]

    @field_validator("roles")
    @classmethod
    def no_self_granted_admin(cls, value: List[RoleEnum]) -> List[RoleEnum]:
        if RoleEnum.SUPER_ADMIN in value:
            raise ValueError("super_admin cannot be self-assigned")
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    """Public user representation returned by the API."""
    id: int
    email: str
    full_name: str
    roles: List[str] = []

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
