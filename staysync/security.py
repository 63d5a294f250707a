from typing import Optional
from itsdangerous import URLSafeSerializer, BadSignature
from fastapi import Request, Depends, HTTPException
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import User

serializer = URLSafeSerializer(settings.SECRET_KEY, salt="staysync-session")


def get_current_user_id(request: Request) -> Optional[int]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        data = serializer.loads(token)
        return int(data.get("uid"))
    except (BadSignature, ValueError, TypeError, AttributeError):
        return None


def require_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency for JSON routes that need a logged-in user."""
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = db.get(User, user_id)
    if not user:
        # The user was deleted but the cookie remains.
        raise HTTPException(status_code=401, detail="Not authenticated")

    return user
