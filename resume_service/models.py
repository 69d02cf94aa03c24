from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)


class TokenResponse(BaseModel):
    token: str


class ProtectedResponse(BaseModel):
    message: str
    user: dict


class UploadResponse(BaseModel):
    message: str
    filename: str
    size: int
    path: str


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
