from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class OperatorPublic(BaseModel):
    email: str


class AuthorizationUrl(BaseModel):
    provider_id: str
    authorization_url: str
