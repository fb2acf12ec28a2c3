from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from frontdesk.core.roles import LOGIN_PATH, View, can_access_view, can_manage_users
from frontdesk.core.security import ACCESS_TOKEN, decode_token
from frontdesk.db.models import User
from frontdesk.db.session import get_db

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
            headers={"X-Redirect-To": LOGIN_PATH},
        )

    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))

    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_view(view: View):
    def dependency(user: User = Depends(get_current_user)) -> User:
        if not can_access_view(user.role, view):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return dependency


def require_user_manager(user: User = Depends(require_view(View.admin))) -> User:
    if not can_manage_users(user.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return user


def client_ip(request: Request) -> str:
    return getattr(request.state, "client_ip", "") or (request.client.host if request.client else "")
