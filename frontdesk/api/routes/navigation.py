from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from frontdesk.api.deps import bearer_scheme
from frontdesk.core.roles import get_default_path, get_nav_items, resolve_route
from frontdesk.core.security import ACCESS_TOKEN, decode_token
from frontdesk.db.models import User
from frontdesk.db.session import get_db

router = APIRouter()


def _optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if not credentials:
        return None
    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)
    except ValueError:
        return None
    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user or not user.is_active:
        return None
    return user


@router.get("")
def navigation(user: User | None = Depends(_optional_user)):
    role = user.role if user else None
    return {
        "data": {
            "authenticated": user is not None,
            "role": role.value if role else None,
            "navItems": get_nav_items(role) if role else [],
            "defaultPath": get_default_path(role),
        }
    }


@router.get("/guard/{view}")
def guard(view: str, user: User | None = Depends(_optional_user)):
    redirect_to = resolve_route(user.role if user else None, view)
    return {"data": {"view": view, "allowed": redirect_to is None, "redirectTo": redirect_to}}
