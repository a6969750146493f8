from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_db, require_admin
from models import ActivateIn, RoleUpdate, UserCreate, UserPublic

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[UserPublic])
def list_users_api(db: Session = Depends(get_db)):
    return crud.list_users(db)


@router.get("/pending", response_model=list[UserPublic])
def list_pending_users_api(db: Session = Depends(get_db)):
    return crud.list_users(db, role="pending")


@router.post("", response_model=UserPublic, status_code=201)
def create_user_api(body: UserCreate, db: Session = Depends(get_db)):
    return crud.create_user(
        db,
        username=body.username,
        password=body.password,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )


@router.get("/{user_id}", response_model=UserPublic)
def get_user_api(user_id: str, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return user


@router.patch("/{user_id}/role", response_model=UserPublic)
def update_user_role_api(user_id: str, body: RoleUpdate, db: Session = Depends(get_db)):
    return crud.update_user_role(db, user_id, body.role)


@router.patch("/{user_id}/activate", response_model=UserPublic)
def activate_user_api(user_id: str, body: Optional[ActivateIn] = None, db: Session = Depends(get_db)):
    return crud.update_user_role(db, user_id, body.role if body else "user")


@router.delete("/{user_id}", status_code=204)
def delete_user_api(user_id: str, db: Session = Depends(get_db)):
    crud.delete_user(db, user_id)
    return None
