from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from frontdesk.core.exceptions import AppException
from frontdesk.core.security import hash_password
from frontdesk.db.models import User, UserRole, Visitor, VisitorStatus
from frontdesk.services.audit_service import write_audit_log
from frontdesk.services.auth_service import serialize_user


def _parse_role(role: str) -> UserRole:
    try:
        return UserRole(role)
    except ValueError as exc:
        raise AppException("Invalid role", status_code=400) from exc


def _guard_super_admin_target(actor: User, role: UserRole) -> None:
    if role == UserRole.super_admin and actor.role != UserRole.super_admin:
        raise AppException("Only a super-admin can grant or modify super-admin accounts", status_code=403)


def list_users(db: Session, role: str | None = None, q: str | None = None, limit: int = 200) -> list[User]:
    query = db.query(User).order_by(User.created_at.desc())
    if role:
        query = query.filter(User.role == _parse_role(role))
    if q:
        term = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(User.username.ilike(term), User.email.ilike(term), User.first_name.ilike(term), User.last_name.ilike(term))
        )
    return query.limit(limit).all()


def get_user(db: Session, user_id: str) -> User:
    row = db.query(User).filter(User.id == user_id).first()
    if not row:
        raise AppException("User not found", status_code=404)
    return row


def create_user(
    db: Session,
    actor: User,
    username: str,
    email: str,
    password: str,
    role: str,
    first_name: str = "",
    last_name: str = "",
    department: str | None = None,
    permissions: list[str] | None = None,
    is_active: bool = True,
) -> User:
    user_role = _parse_role(role)
    _guard_super_admin_target(actor, user_role)
    username = username.strip().lower()
    email = email.strip().lower()
    if db.query(User).filter(or_(User.username == username, User.email == email)).first():
        raise AppException("Username or email already exists", status_code=409)

    row = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        department=department,
        password_hash=hash_password(password),
        role=user_role,
        permissions_csv=",".join(permissions or []),
        is_active=is_active,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    write_audit_log(
        db,
        action="user_created",
        user_id=actor.id,
        details={"targetUserId": row.id, "username": row.username, "role": row.role.value},
    )
    return row


def update_user(db: Session, actor: User, user_id: str, updates: dict) -> User:
    row = get_user(db, user_id)
    _guard_super_admin_target(actor, row.role)

    changed: dict = {}
    if updates.get("email") is not None:
        email = updates["email"].strip().lower()
        clash = db.query(User).filter(func.lower(User.email) == email, User.id != row.id).first()
        if clash:
            raise AppException("Username or email already exists", status_code=409)
        row.email = email
        changed["email"] = email
    if updates.get("role") is not None:
        new_role = _parse_role(updates["role"])
        _guard_super_admin_target(actor, new_role)
        row.role = new_role
        changed["role"] = new_role.value
    for field, column in (
        ("firstName", "first_name"),
        ("lastName", "last_name"),
        ("department", "department"),
    ):
        if updates.get(field) is not None:
            setattr(row, column, updates[field])
            changed[field] = updates[field]
    if updates.get("isActive") is not None:
        row.is_active = bool(updates["isActive"])
        changed["isActive"] = row.is_active
    if updates.get("permissions") is not None:
        row.permissions_csv = ",".join(updates["permissions"])
        changed["permissions"] = updates["permissions"]
    if updates.get("password"):
        row.password_hash = hash_password(updates["password"])
        changed["password"] = "***"

    db.commit()
    db.refresh(row)
    write_audit_log(db, action="user_updated", user_id=actor.id, details={"targetUserId": row.id, **changed})
    return row


def delete_user(db: Session, actor: User, user_id: str) -> None:
    row = get_user(db, user_id)
    if row.id == actor.id:
        raise AppException("You cannot delete your own account", status_code=400)
    _guard_super_admin_target(actor, row.role)
    username = row.username
    db.delete(row)
    db.commit()
    write_audit_log(db, action="user_deleted", user_id=actor.id, details={"targetUserId": user_id, "username": username})


def get_admin_overview(db: Session) -> dict:
    users = db.query(User).all()
    by_role = {role.value: 0 for role in UserRole}
    for row in users:
        by_role[row.role.value] += 1

    return {
        "users": {
            "total": len(users),
            "active": len([u for u in users if u.is_active]),
            "byRole": by_role,
        },
        "visitors": {
            "total": db.query(Visitor).count(),
            "checkedIn": db.query(Visitor).filter(Visitor.status == VisitorStatus.checked_in.value).count(),
            "evacuated": db.query(Visitor).filter(Visitor.status == VisitorStatus.emergency_evacuated.value).count(),
        },
    }


def serialize_users(rows: list[User]) -> list[dict]:
    return [serialize_user(row) for row in rows]
