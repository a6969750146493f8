from collections.abc import Callable, Generator
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

import crud
from auth import clear_session, get_session_user_id
from db import SessionLocal
from models import UserPublic


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> UserPublic:
    """Resolve the logged-in user from the session, re-reading the row on every request."""
    user_id = get_session_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="not authenticated")

    user = crud.get_user(db, user_id)
    if not user:
        clear_session(request)
        raise HTTPException(status_code=401, detail="not authenticated")
    if user.role == "pending":
        raise HTTPException(status_code=403, detail="account is waiting for admin approval")
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[UserPublic]:
    user_id = get_session_user_id(request)
    if not user_id:
        return None
    user = crud.get_user(db, user_id)
    if not user or user.role == "pending":
        return None
    return user


def _role_message(roles: tuple[str, ...]) -> str:
    return "admin access required" if roles == ("admin",) else "forbidden"


def require_role(*roles: str) -> Callable[..., UserPublic]:
    def _guard(user: UserPublic = Depends(get_current_user)) -> UserPublic:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=_role_message(roles))
        return user

    return _guard


def require_ui_role(*roles: str, back: str = "/ui/inventory") -> Callable[..., UserPublic]:
    """Same check as require_role for form posts: failures redirect (303) instead of erroring."""
    def _guard(user: Optional[UserPublic] = Depends(get_optional_user)) -> UserPublic:
        if not user:
            raise HTTPException(status_code=303, headers={"Location": "/ui/login"})
        if user.role not in roles:
            location = f"{back}?{urlencode({'msg': _role_message(roles)})}"
            raise HTTPException(status_code=303, headers={"Location": location})
        return user

    return _guard


require_admin = require_role("admin")


def can_return(user: UserPublic, current_borrower_id: str | None) -> bool:
    # admins return anything, everyone else only what they borrowed
    return user.role == "admin" or (current_borrower_id is not None and current_borrower_id == user.id)
