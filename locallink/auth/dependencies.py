from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from locallink.auth import jwt_handler
from locallink.database import SessionLocal
from locallink.models.user import User

security = HTTPBearer()

ADMIN_ROLE = "admin"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    uid = payload.get("sub")
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.uid == uid).first()
    finally:
        db.close()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def ensure_calendar_owner(user: User, provider_id: str) -> None:
    """Only the provider who owns a calendar, or an admin, may change it."""
    if user.role == ADMIN_ROLE:
        return
    if user.uid != provider_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the calendar owner can change this calendar.",
        )
