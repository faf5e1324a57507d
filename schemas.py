from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, constr, field_validator

Role = Literal["child", "admin"]

DEFAULT_COLOR = "blue"
NO_ACCESSORY = "none"


class UserBase(BaseModel):
    username: constr(min_length=3, max_length=20)
    role: Role = "child"

    @field_validator("username")
    @classmethod
    def no_surrounding_whitespace(cls, value):
        if value != value.strip():
            raise ValueError("must not start or end with whitespace")
        return value


class UserCreate(UserBase):
    password: constr(min_length=8)


class AccountSummary(UserBase):
    id: int

    class Config:
        from_attributes = True


class AccountView(AccountSummary):
    hashed_password: str = Field(repr=False)

    def summary(self) -> AccountSummary:
        return AccountSummary(id=self.id, username=self.username, role=self.role)


class AvatarCustomization(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=30)
    color: str = DEFAULT_COLOR
    accessory: str = NO_ACCESSORY

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value):
        value = (value or "").strip().lower()
        return value or DEFAULT_COLOR

    @field_validator("accessory", mode="before")
    @classmethod
    def normalize_accessory(cls, value):
        value = (value or "").strip().lower()
        return value or NO_ACCESSORY


class AvatarView(BaseModel):
    id: int
    user_id: int
    name: str
    color: str
    accessory: str
    level: int = Field(ge=1)
    total_experience: int = Field(ge=0)

    class Config:
        from_attributes = True


class ProgressView(BaseModel):
    id: int
    user_id: int
    test_timestamp: datetime
    cmas_score: int = Field(ge=0)

    class Config:
        from_attributes = True


class LevelUpResult(BaseModel):
    progress: ProgressView
    leveled_up: bool
    new_level: int
    gained_experience: int
