from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from frontdesk.api.deps import client_ip, require_user_manager, require_view
from frontdesk.core.exceptions import AppException
from frontdesk.core.roles import View
from frontdesk.db.models import User
from frontdesk.db.session import get_db
from frontdesk.services import drive_service
from frontdesk.services.admin_service import (
    create_user,
    delete_user,
    get_admin_overview,
    get_user,
    list_users,
    serialize_users,
    update_user,
)
from frontdesk.services.audit_service import list_audit_logs, serialize_audit_log, write_audit_log
from frontdesk.services.auth_service import serialize_user

router = APIRouter()


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str
    role: str
    firstName: str = ""
    lastName: str = ""
    department: str | None = None
    permissions: list[str] = []
    isActive: bool = True


class UserUpdate(BaseModel):
    role: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    email: EmailStr | None = None
    department: str | None = None
    isActive: bool | None = None
    permissions: list[str] | None = None
    password: str | None = None


class BackupConfig(BaseModel):
    clientId: str
    clientSecret: str | None = None
    folderId: str | None = None


class BackupAuthorize(BaseModel):
    code: str | None = None
    redirectUri: str | None = None
    accessToken: str | None = None
    expiresIn: int | None = None
    refreshToken: str | None = None


@router.get("/overview")
def admin_overview(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.admin)),
):
    return {"data": get_admin_overview(db)}


@router.get("/users")
def admin_list_users(
    role: str | None = Query(default=None),
    q: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    _: User = Depends(require_user_manager),
):
    return {"data": serialize_users(list_users(db, role=role, q=q, limit=limit))}


@router.post("/users")
def admin_create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_user_manager),
):
    row = create_user(
        db,
        actor,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        first_name=payload.firstName,
        last_name=payload.lastName,
        department=payload.department,
        permissions=payload.permissions,
        is_active=payload.isActive,
    )
    return {"data": serialize_user(row)}


@router.get("/users/{user_id}")
def admin_get_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_user_manager),
):
    return {"data": serialize_user(get_user(db, user_id))}


@router.patch("/users/{user_id}")
def admin_patch_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_user_manager),
):
    row = update_user(db, actor, user_id, payload.model_dump(exclude_none=True))
    return {"data": serialize_user(row)}


@router.delete("/users/{user_id}")
def admin_delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_user_manager),
):
    delete_user(db, actor, user_id)
    return {"data": {"id": user_id, "deleted": True}}


@router.get("/audit-logs")
def admin_audit_logs(
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.admin)),
):
    return {"data": [serialize_audit_log(row) for row in list_audit_logs(db, limit=limit)]}


@router.get("/backup")
def admin_backup_status(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.admin)),
):
    return {"data": drive_service.get_backup_status(db)}


@router.put("/backup/config")
def admin_backup_config(
    payload: BackupConfig,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_view(View.admin)),
):
    if not payload.clientId.strip():
        raise AppException("Please enter a valid Google Client ID", status_code=400)
    drive_service.save_configuration(db, payload.clientId, payload.clientSecret, payload.folderId)
    write_audit_log(
        db,
        action="backup_configured",
        user_id=actor.id,
        details={"folderId": drive_service.get_folder_id(db)},
        ip_address=client_ip(request),
    )
    return {"data": drive_service.get_backup_status(db)}


@router.post("/backup/authorize")
def admin_backup_authorize(
    payload: BackupAuthorize,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_view(View.admin)),
):
    if payload.code:
        if not payload.redirectUri:
            raise AppException("redirectUri is required with an authorization code", status_code=400)
        drive_service.exchange_authorization_code(db, payload.code, payload.redirectUri)
    elif payload.accessToken:
        drive_service.store_access_token(db, payload.accessToken, payload.expiresIn, payload.refreshToken)
    else:
        raise AppException("Provide an authorization code or an access token", status_code=400)
    write_audit_log(db, action="backup_authorized", user_id=actor.id, ip_address=client_ip(request))
    return {"data": drive_service.get_backup_status(db)}


@router.delete("/backup/authorization")
def admin_backup_revoke(
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_view(View.admin)),
):
    drive_service.clear_tokens(db)
    write_audit_log(db, action="backup_signed_out", user_id=actor.id, ip_address=client_ip(request))
    return {"data": drive_service.get_backup_status(db)}


@router.post("/backup/run")
def admin_backup_run(
    db: Session = Depends(get_db),
    actor: User = Depends(require_view(View.admin)),
):
    return {"data": drive_service.create_backup(db, actor_id=actor.id)}
