from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from dependencies import get_current_user, get_db
from models import BorrowingHistory, Purchase, Stats, UserPublic

router = APIRouter(prefix="/api", tags=["history"])


@router.get("/borrowing-history", response_model=list[BorrowingHistory])
def borrowing_history_api(
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.role == "admin":
        return crud.list_borrowing_history(db)
    return crud.list_borrowing_history(db, borrower_id=user.id)


@router.get("/purchases", response_model=list[Purchase])
def list_purchases_api(
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.role == "admin":
        return crud.list_purchases(db)
    return crud.list_purchases(db, user_id=user.id)


@router.get("/stats", response_model=Stats, dependencies=[Depends(get_current_user)])
def stats_api(db: Session = Depends(get_db)):
    return crud.get_stats(db)
