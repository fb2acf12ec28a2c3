import json
import logging
from datetime import datetime
from threading import Lock

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials as firebase_credentials
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from frontdesk.core.config import get_settings
from frontdesk.core.exceptions import AppException
from frontdesk.core.roles import get_default_path
from frontdesk.core.security import (
    REFRESH_TOKEN,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from frontdesk.db.models import User, UserRole
from frontdesk.schemas.auth import AuthResponse
from frontdesk.services.audit_service import write_audit_log

settings = get_settings()
_firebase_init_lock = Lock()
logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    ("superadmin", "superadmin@visitors.nazarethhospital.org", "Super", "Admin", UserRole.super_admin),
    ("admin", "admin@visitors.nazarethhospital.org", "Facility", "Admin", UserRole.admin),
    ("hierarchy", "hierarchy@visitors.nazarethhospital.org", "Unit", "Manager", UserRole.hierarchy_person),
    ("frontdesk", "frontdesk@visitors.nazarethhospital.org", "Front", "Desk", UserRole.front_desk),
]


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "firstName": user.first_name or "",
        "lastName": user.last_name or "",
        "role": user.role.value,
        "department": user.department,
        "isActive": bool(user.is_active),
        "permissions": user.permissions,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "lastLogin": user.last_login.isoformat() if user.last_login else None,
    }


def _ensure_firebase_app():
    if firebase_admin._apps:
        return firebase_admin.get_app()

    with _firebase_init_lock:
        if firebase_admin._apps:
            return firebase_admin.get_app()
        if not settings.FIREBASE_PROJECT_ID:
            raise AppException("FIREBASE_PROJECT_ID is not configured", status_code=500)
        raw_json = (settings.FIREBASE_SERVICE_ACCOUNT_JSON or "").strip()
        if raw_json:
            try:
                service_account = json.loads(raw_json)
            except json.JSONDecodeError as exc:
                raise AppException("FIREBASE_SERVICE_ACCOUNT_JSON is not valid JSON", status_code=500) from exc
            return firebase_admin.initialize_app(
                credential=firebase_credentials.Certificate(service_account),
                options={"projectId": settings.FIREBASE_PROJECT_ID},
            )
        logger.warning("Firebase service account not configured, using default credentials lookup")
        return firebase_admin.initialize_app(options={"projectId": settings.FIREBASE_PROJECT_ID})


def _verify_google_id_token(id_token: str) -> str:
    if not id_token:
        raise AppException("idToken is required", status_code=400)

    app = _ensure_firebase_app()
    try:
        decoded = firebase_auth.verify_id_token(id_token, app=app)
    except Exception as exc:
        logger.warning("Google token verification failed: %s", exc.__class__.__name__)
        raise AppException("Invalid Google ID token", status_code=401) from exc

    email = (decoded.get("email") or "").strip().lower()
    if not email:
        raise AppException("Google account email is missing", status_code=400)
    if decoded.get("email_verified") is False:
        raise AppException("Google email is not verified", status_code=401)
    return email


def _issue_auth_tokens(db: Session, user: User, ip_address: str = "") -> AuthResponse:
    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)
    write_audit_log(db, action="user_login", user_id=user.id, details={"username": user.username}, ip_address=ip_address)

    tokens = create_token_pair(user.id, user.role.value, user.username)
    return AuthResponse(
        accessToken=tokens["accessToken"],
        refreshToken=tokens["refreshToken"],
        user=serialize_user(user),
        defaultPath=get_default_path(user.role),
    )


def login(db: Session, username: str, password: str, ip_address: str = "") -> AuthResponse:
    login_key = (username or "").strip().lower()
    user = db.query(User).filter(or_(User.username == login_key, User.email == login_key)).first()
    if not user or not verify_password(password, user.password_hash):
        raise AppException("Invalid credentials", status_code=401)
    if not user.is_active:
        raise AppException("Account is disabled", status_code=403)
    return _issue_auth_tokens(db, user, ip_address=ip_address)


def signup(
    db: Session,
    username: str,
    email: str,
    password: str,
    first_name: str = "",
    last_name: str = "",
    department: str | None = None,
) -> dict:
    username = username.strip().lower()
    email = email.strip().lower()
    existing = db.query(User).filter(or_(User.username == username, User.email == email)).first()
    if existing:
        raise AppException("Username or email already exists", status_code=409)

    # Self-service accounts are front-desk only; elevated roles are granted by an admin.
    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        department=department,
        password_hash=hash_password(password),
        role=UserRole.front_desk,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    write_audit_log(db, action="user_signup", user_id=user.id, details={"username": user.username})
    return serialize_user(user)


def google_signin(db: Session, id_token: str, ip_address: str = "") -> AuthResponse:
    email = _verify_google_id_token(id_token)
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise AppException("No staff account for this Google email", status_code=404)
    if not user.is_active:
        raise AppException("Account is disabled", status_code=403)
    return _issue_auth_tokens(db, user, ip_address=ip_address)


def refresh_tokens(db: Session, refresh_token: str) -> dict:
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
    except ValueError as exc:
        raise AppException("Invalid refresh token", status_code=401) from exc
    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user or not user.is_active:
        raise AppException("Invalid refresh token", status_code=401)
    return create_token_pair(user.id, user.role.value, user.username)


def logout(db: Session, user: User, ip_address: str = "") -> None:
    write_audit_log(db, action="user_logout", user_id=user.id, ip_address=ip_address)


def change_password(db: Session, user: User, current_password: str, new_password: str) -> dict:
    if not verify_password(current_password, user.password_hash):
        raise AppException("Current password is incorrect", status_code=400)
    user.password_hash = hash_password(new_password)
    db.commit()
    return {"status": "password_changed"}


def seed_default_users(db: Session) -> int:
    if db.query(User).count() > 0:
        return 0

    rows = [
        User(
            username=username,
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(settings.SEED_DEFAULT_PASSWORD),
            role=role,
            is_active=True,
        )
        for username, email, first_name, last_name, role in DEFAULT_USERS
    ]
    try:
        db.add_all(rows)
        db.commit()
    except IntegrityError:
        # Another worker already seeded.
        db.rollback()
        return 0
    logger.info("Seeded %d default staff accounts", len(rows))
    return len(rows)
