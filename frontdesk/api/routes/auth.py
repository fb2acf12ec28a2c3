from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from frontdesk.api.deps import client_ip, get_current_user
from frontdesk.core.roles import get_default_path, get_nav_items
from frontdesk.db.models import User
from frontdesk.db.session import get_db
from frontdesk.schemas.auth import (
    ChangePasswordRequest,
    GoogleSigninRequest,
    LoginRequest,
    RefreshTokenRequest,
    SignupRequest,
)
from frontdesk.services import auth_service

router = APIRouter()


@router.post("/login")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    data = auth_service.login(db, payload.username, payload.password, ip_address=client_ip(request))
    return {"data": data.model_dump()}


@router.post("/signup")
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    data = auth_service.signup(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        first_name=payload.firstName,
        last_name=payload.lastName,
        department=payload.department,
    )
    return {"data": data}


@router.post("/google-signin")
def google_signin(payload: GoogleSigninRequest, request: Request, db: Session = Depends(get_db)):
    data = auth_service.google_signin(db, payload.idToken, ip_address=client_ip(request))
    return {"data": data.model_dump()}


@router.post("/refresh")
def refresh(payload: RefreshTokenRequest, db: Session = Depends(get_db)):
    return {"data": auth_service.refresh_tokens(db, payload.refreshToken)}


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    auth_service.logout(db, user, ip_address=client_ip(request))
    return {"data": {"status": "logged_out"}}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {
        "data": {
            "user": auth_service.serialize_user(user),
            "navItems": get_nav_items(user.role),
            "defaultPath": get_default_path(user.role),
        }
    }


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"data": auth_service.change_password(db, user, payload.currentPassword, payload.newPassword)}
