from pydantic import BaseModel, EmailStr


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UsernameRequest(BaseModel):
    username: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    screen: str


class ProfileUpdate(BaseModel):
    display_name: str


class UserOut(BaseModel):
    id: str
    email: str
    username: str | None = None
    display_name: str | None = None
    screen: str
