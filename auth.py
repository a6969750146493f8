from typing import Optional

from fastapi import Request
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
SESSION_USER_KEY = "user"


# Password hashing
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


# Session management (signed cookie via SessionMiddleware)
def set_session_user(request: Request, user) -> None:
    request.session[SESSION_USER_KEY] = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
    }

def get_session_user_id(request: Request) -> Optional[str]:
    data = request.session.get(SESSION_USER_KEY)
    if not data:
        return None
    return data.get("id")

def clear_session(request: Request) -> None:
    request.session.clear()
