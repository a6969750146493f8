from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_current_user, get_db, require_admin
from models import Category, CategoryIn, CategoryUpdate

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=list[Category], dependencies=[Depends(get_current_user)])
def list_categories_api(db: Session = Depends(get_db)):
    return crud.list_categories(db)


@router.post("", response_model=Category, status_code=201, dependencies=[Depends(require_admin)])
def create_category_api(body: CategoryIn, db: Session = Depends(get_db)):
    return crud.create_category(db, body)


@router.patch("/{category_id}", response_model=Category, dependencies=[Depends(require_admin)])
def update_category_api(category_id: str, body: CategoryUpdate, db: Session = Depends(get_db)):
    updated = crud.update_category(db, category_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="category not found")
    return updated


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def delete_category_api(category_id: str, db: Session = Depends(get_db)):
    if not crud.delete_category(db, category_id):
        raise HTTPException(status_code=404, detail="category not found")
    return {"message": "category deleted"}
