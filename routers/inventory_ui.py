from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
from auth import clear_session, set_session_user
from dependencies import can_return, get_db, get_optional_user, require_ui_role
from errors import InventoryError
from filter_helpers import blank_to_none, normalize_available, normalize_order, normalize_sort
from models import InventoryItemIn, UserPublic
from notifications import queue_borrow_notice, queue_purchase_notice

router = APIRouter()
PAGE_SIZE = 50
require_ui_admin = require_ui_role("admin")


def _redirect(url: str = "/ui/inventory", msg: Optional[str] = None) -> RedirectResponse:
    if msg:
        url = f"{url}?{urlencode({'msg': msg})}"
    return RedirectResponse(url=url, status_code=303)


def _login_redirect() -> RedirectResponse:
    return RedirectResponse(url="/ui/login", status_code=303)


@router.get("/ui/login", response_class=HTMLResponse)
def login_ui(request: Request, msg: Optional[str] = None):
    templates = request.app.state.templates
    return templates.TemplateResponse(request, "login.html", {"msg": msg or ""})


@router.post("/ui/login")
def login_ui_post(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    user = crud.authenticate_user(db, username, password)
    if not user:
        return _redirect("/ui/login", "invalid username or password")
    if user.role == "pending":
        return _redirect("/ui/login", "account is waiting for admin approval")

    set_session_user(request, user)
    return _redirect()


@router.post("/ui/logout")
def logout_ui(request: Request):
    clear_session(request)
    return _login_redirect()


@router.get("/ui/inventory", response_class=HTMLResponse)
def inventory_ui(
    request: Request,
    q: Optional[str] = None,
    category_id: Optional[str] = None,
    available: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    page: int = 1,
    msg: Optional[str] = None,
    user: Optional[UserPublic] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not user:
        return _login_redirect()
    if page < 1:
        page = 1

    q = blank_to_none(q)
    category_id = blank_to_none(category_id)
    avail = normalize_available(available)
    sort = normalize_sort(sort)
    order = normalize_order(order)

    meta = crud.items_meta(
        db,
        q=q,
        category_id=category_id,
        available=avail,
        limit=PAGE_SIZE,
        offset=(page - 1) * PAGE_SIZE,
    )
    total = meta["total"]
    total_pages = meta["total_pages"]
    if page > total_pages:
        page = total_pages

    items = crud.list_items_filtered(
        db,
        q=q,
        category_id=category_id,
        available=avail,
        sort=sort,
        order=order,
        limit=PAGE_SIZE,
        offset=(page - 1) * PAGE_SIZE,
    )

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "inventory.html",
        {
            "user": user,
            "items": items,
            "categories": crud.list_categories(db),
            "stats": crud.get_stats(db),
            "q": q or "",
            "category_id": category_id or "",
            "available": available or "",
            "sort": sort,
            "order": order,
            "page": page,
            "total_pages": total_pages,
            "total": total,
            "msg": msg or "",
        },
    )


@router.post("/ui/inventory", dependencies=[Depends(require_ui_admin)])
def create_item_ui(
    name: str = Form(...),
    category_id: str = Form(...),
    location: str = Form(...),
    description: Optional[str] = Form(None),
    is_purchasable: Optional[str] = Form(None),
    price_per_unit: Optional[str] = Form(None),
    stock_quantity: int = Form(1),
    db: Session = Depends(get_db),
):
    try:
        body = InventoryItemIn(
            name=name,
            category_id=category_id,
            location=location,
            description=description or None,
            is_purchasable=is_purchasable == "on",
            price_per_unit=price_per_unit,
            stock_quantity=max(stock_quantity, 0),
        )
    except ValidationError:
        return _redirect(msg="invalid item data")
    try:
        crud.create_item(db, body)
    except InventoryError as e:
        return _redirect(msg=e.message)
    return _redirect()


@router.post("/ui/inventory/{item_id}/delete", dependencies=[Depends(require_ui_admin)])
def delete_item_ui(
    item_id: str,
    db: Session = Depends(get_db),
):
    try:
        crud.delete_item(db, item_id)
    except InventoryError as e:
        return _redirect(msg=e.message)
    return _redirect()


@router.post("/ui/inventory/{item_id}/borrow")
def borrow_item_ui(
    item_id: str,
    background_tasks: BackgroundTasks,
    user: Optional[UserPublic] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not user:
        return _login_redirect()
    try:
        history = crud.borrow_item(db, item_id, user.id)
    except InventoryError as e:
        return _redirect(msg=e.message)

    queue_borrow_notice(background_tasks, crud.list_admin_emails(db), user, history)
    template = crud.get_active_template(db, "borrow")
    return _redirect(msg=template.message if template else None)


@router.post("/ui/inventory/{item_id}/return")
def return_item_ui(
    item_id: str,
    user: Optional[UserPublic] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not user:
        return _login_redirect()

    item = crud.get_item(db, item_id)
    if not item:
        return _redirect(msg="item not found")
    if not can_return(user, item.current_borrower_id):
        return _redirect(msg="you can only return items you borrowed")

    crud.return_item(db, item_id)
    return _redirect()


@router.post("/ui/inventory/{item_id}/purchase")
def purchase_item_ui(
    item_id: str,
    background_tasks: BackgroundTasks,
    quantity: int = Form(1),
    user: Optional[UserPublic] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not user:
        return _login_redirect()
    try:
        purchase = crud.purchase_item(db, item_id, user.id, quantity)
    except InventoryError as e:
        return _redirect(msg=e.message)

    queue_purchase_notice(background_tasks, crud.list_admin_emails(db), user, purchase)
    template = crud.get_active_template(db, "purchase")
    return _redirect(msg=template.message if template else None)
