from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    username: str
    password: str


class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    password: str
    firstName: str = ""
    lastName: str = ""
    department: str | None = None


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str


class RefreshTokenRequest(BaseModel):
    refreshToken: str


class GoogleSigninRequest(BaseModel):
    idToken: str


class AuthUser(BaseModel):
    id: str
    username: str
    email: str
    firstName: str
    lastName: str
    role: str
    department: str | None = None
    isActive: bool
    permissions: list[str]
    createdAt: str | None = None
    lastLogin: str | None = None


class AuthResponse(BaseModel):
    accessToken: str
    refreshToken: str
    user: AuthUser
    defaultPath: str
