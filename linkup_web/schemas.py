"""Request bodies. Shape checks happen here, before any service runs."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

PASSWORD_PATTERN = r"^[a-zA-Z0-9]{8,30}$"


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class SignupRequest(RequestModel):
    first_name: str = Field(..., min_length=2, max_length=16)
    last_name: str = Field(..., min_length=2, max_length=16)
    email: EmailStr
    password: str = Field(..., pattern=PASSWORD_PATTERN)
    repeat_password: str
    job_title: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.repeat_password:
            raise ValueError("Repeat password must match the password")
        return self


class LoginRequest(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ResetCodeRequest(RequestModel):
    email: EmailStr


class ResetPasswordRequest(RequestModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^[0-9a-fA-F]+$")
    password: str = Field(..., pattern=PASSWORD_PATTERN)
    repeat_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.repeat_password:
            raise ValueError("Repeat password must match the password")
        return self


class UpdateAccountRequest(RequestModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=16)
    last_name: Optional[str] = Field(None, min_length=2, max_length=16)
    email: Optional[EmailStr] = None
    job_title: Optional[str] = Field(None, max_length=64)
    password: Optional[str] = Field(None, pattern=PASSWORD_PATTERN)
    repeat_password: Optional[str] = None
    deactivated: Optional[bool] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password is not None and self.password != self.repeat_password:
            raise ValueError("Repeat password must match the password")
        return self


class BlockRequest(RequestModel):
    blocked: bool


class CreatePostRequest(RequestModel):
    text: str = Field(..., min_length=1)
    is_private: bool = False


class UpdatePostRequest(RequestModel):
    text: Optional[str] = Field(None, min_length=1)
    is_private: Optional[bool] = None

    @model_validator(mode="after")
    def has_changes(self):
        if self.text is None and self.is_private is None:
            raise ValueError("Nothing to update")
        return self


class CommentTextRequest(RequestModel):
    text: str = Field(..., min_length=1)
