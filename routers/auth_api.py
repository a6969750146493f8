import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

import crud
from auth import clear_session, set_session_user
from dependencies import get_current_user, get_db
from models import LoginIn, PasswordChange, ProfileUpdate, RegisterIn, UserPublic
from notifications import display_name, registration_notice, send_admin_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register")
def register_api(
    body: RegisterIn,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user = crud.create_user(
        db,
        username=body.username,
        password=body.password,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role="pending",
    )

    notice = registration_notice(
        username=user.username,
        full_name=display_name("", user.first_name, user.last_name) or None,
        email=user.email,
        registered_at=user.created_at,
    )
    background_tasks.add_task(send_admin_notification, notice, crud.list_admin_emails(db))

    return {
        "success": True,
        "message": "registration received, waiting for admin approval",
        "user": user.model_dump(by_alias=True, mode="json"),
    }


@router.post("/login")
def login_api(
    body: LoginIn,
    request: Request,
    db: Session = Depends(get_db),
):
    user = crud.authenticate_user(db, body.username, body.password)
    if not user:
        logger.info("login failed username=%s", body.username)
        raise HTTPException(status_code=401, detail="invalid username or password")
    if user.role == "pending":
        raise HTTPException(status_code=403, detail="account is waiting for admin approval")

    set_session_user(request, user)
    logger.info("login username=%s", user.username)
    return {"success": True, "user": user.model_dump(by_alias=True, mode="json")}


@router.post("/logout")
def logout_api(request: Request):
    clear_session(request)
    return {"success": True}


@router.get("/auth/user", response_model=UserPublic)
def current_user_api(user: UserPublic = Depends(get_current_user)):
    return user


@router.patch("/profile", response_model=UserPublic)
def update_profile_api(
    body: ProfileUpdate,
    request: Request,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = crud.update_user_profile(db, user.id, body)
    set_session_user(request, updated)
    return updated


@router.post("/change-password")
def change_password_api(
    body: PasswordChange,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not crud.change_password(db, user.id, body.current_password, body.new_password):
        raise HTTPException(status_code=401, detail="current password is wrong")
    return {"success": True}


@router.delete("/profile")
def delete_profile_api(
    request: Request,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud.delete_user(db, user.id)
    clear_session(request)
    return {"success": True}
