from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
from dependencies import get_db, get_optional_user, require_ui_role
from errors import InventoryError
from models import CategoryIn, UserPublic

router = APIRouter()
require_ui_admin = require_ui_role("admin", back="/ui/categories")


def _back(msg: Optional[str] = None) -> RedirectResponse:
    url = "/ui/categories"
    if msg:
        url = f"{url}?{urlencode({'msg': msg})}"
    return RedirectResponse(url=url, status_code=303)


@router.get("/ui/categories", response_class=HTMLResponse)
def categories_ui(
    request: Request,
    msg: Optional[str] = None,
    user: Optional[UserPublic] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not user:
        return RedirectResponse(url="/ui/login", status_code=303)

    categories = crud.list_categories(db)
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "categories.html",
        {"categories": categories, "user": user, "msg": msg or ""},
    )


@router.post("/ui/categories", dependencies=[Depends(require_ui_admin)])
def create_category_ui(
    name: str = Form(...),
    description: Optional[str] = Form(None),
    color: str = Form("#1976D2"),
    db: Session = Depends(get_db),
):
    try:
        crud.create_category(db, CategoryIn(name=name, description=description or None, color=color))
    except ValidationError:
        return _back("invalid category data")
    except InventoryError as e:
        return _back(e.message)
    return _back()


@router.post("/ui/categories/{category_id}/delete", dependencies=[Depends(require_ui_admin)])
def delete_category_ui(
    category_id: str,
    db: Session = Depends(get_db),
):
    try:
        crud.delete_category(db, category_id)
    except InventoryError as e:
        return _back(e.message)
    return _back()
