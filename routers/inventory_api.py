from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import can_return, get_current_user, get_db, require_admin
from filter_helpers import (
    blank_to_none,
    normalize_available,
    normalize_limit,
    normalize_offset,
    normalize_order,
    normalize_sort,
)
from models import (
    BorrowResult,
    InventoryItem,
    InventoryItemIn,
    InventoryItemUpdate,
    InventoryMeta,
    ItemPurchaseIn,
    PurchaseIn,
    PurchaseResult,
    ReturnResult,
    UserPublic,
)
from notifications import queue_borrow_notice, queue_purchase_notice

router = APIRouter(prefix="/api", tags=["inventory"])


@router.get("/inventory", response_model=list[InventoryItem], dependencies=[Depends(get_current_user)])
def list_inventory_api(
    q: Optional[str] = None,
    category_id: Optional[str] = None,
    available: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    limit: int = 500,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return crud.list_items_filtered(
        db,
        q=blank_to_none(q),
        category_id=blank_to_none(category_id),
        available=normalize_available(available),
        sort=normalize_sort(sort),
        order=normalize_order(order),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )


@router.get("/inventory/meta", response_model=InventoryMeta, dependencies=[Depends(get_current_user)])
def inventory_meta_api(
    q: Optional[str] = None,
    category_id: Optional[str] = None,
    available: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    meta = crud.items_meta(
        db,
        q=blank_to_none(q),
        category_id=blank_to_none(category_id),
        available=normalize_available(available),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )
    return InventoryMeta(**meta)


@router.post("/inventory", response_model=InventoryItem, status_code=201, dependencies=[Depends(require_admin)])
def create_item_api(body: InventoryItemIn, db: Session = Depends(get_db)):
    return crud.create_item(db, body)


@router.get("/inventory/{item_id}", response_model=InventoryItem, dependencies=[Depends(get_current_user)])
def get_item_api(item_id: str, db: Session = Depends(get_db)):
    item = crud.get_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="item not found")
    return item


@router.patch("/inventory/{item_id}", response_model=InventoryItem, dependencies=[Depends(require_admin)])
def update_item_api(item_id: str, body: InventoryItemUpdate, db: Session = Depends(get_db)):
    updated = crud.update_item(db, item_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="item not found")
    return updated


@router.delete("/inventory/{item_id}", dependencies=[Depends(require_admin)])
def delete_item_api(item_id: str, db: Session = Depends(get_db)):
    if not crud.delete_item(db, item_id):
        raise HTTPException(status_code=404, detail="item not found")
    return {"message": "item deleted"}


# -----------------------
# Borrow / return / purchase
# -----------------------
@router.post("/inventory/{item_id}/borrow", response_model=BorrowResult)
def borrow_item_api(
    item_id: str,
    background_tasks: BackgroundTasks,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    history = crud.borrow_item(db, item_id, user.id)

    queue_borrow_notice(background_tasks, crud.list_admin_emails(db), user, history)

    return BorrowResult(success=True, notification=crud.get_active_template(db, "borrow"))


@router.post("/inventory/{item_id}/return", response_model=ReturnResult)
def return_item_api(
    item_id: str,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = crud.get_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="item not found")
    if not can_return(user, item.current_borrower_id):
        raise HTTPException(status_code=403, detail="you can only return items you borrowed")

    crud.return_item(db, item_id)
    return ReturnResult(success=True)


def _purchase(
    db: Session,
    background_tasks: BackgroundTasks,
    user: UserPublic,
    item_id: str,
    quantity: int,
    price_per_unit=None,
) -> PurchaseResult:
    purchase = crud.purchase_item(db, item_id, user.id, quantity, price_per_unit)

    queue_purchase_notice(background_tasks, crud.list_admin_emails(db), user, purchase)

    return PurchaseResult(
        **purchase.model_dump(),
        notification=crud.get_active_template(db, "purchase"),
    )


@router.post("/purchases", response_model=PurchaseResult, status_code=201)
def create_purchase_api(
    body: PurchaseIn,
    background_tasks: BackgroundTasks,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # only admins may sell at a price other than the item price
    price = body.price_per_unit if user.role == "admin" else None
    return _purchase(db, background_tasks, user, body.item_id, body.quantity, price)


@router.post("/inventory/{item_id}/purchase", response_model=PurchaseResult, status_code=201)
def purchase_item_api(
    item_id: str,
    body: ItemPurchaseIn,
    background_tasks: BackgroundTasks,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _purchase(db, background_tasks, user, item_id, body.quantity)
