from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from typing import Optional
from uuid import uuid4

from sqlalchemy import select, delete, func, or_, update
from sqlalchemy.orm import Session, aliased

from auth import get_password_hash, verify_password
from errors import ConflictError, InsufficientStockError, InventoryError, LastAdminError, NotFoundError
from models import (
    BorrowingHistory,
    Category,
    CategoryIn,
    CategoryUpdate,
    InventoryItem,
    InventoryItemBrief,
    InventoryItemIn,
    InventoryItemUpdate,
    NotificationTemplate,
    NotificationTemplateIn,
    NotificationTemplateUpdate,
    ProfileUpdate,
    Purchase,
    Stats,
    UserPublic,
)
from orm import (
    BorrowingHistoryORM,
    CategoryORM,
    InventoryItemORM,
    NotificationTemplateORM,
    PurchaseORM,
    UserORM,
)

logger = logging.getLogger(__name__)

ALLOWED_SORTS = {
    "name": InventoryItemORM.name,
    "location": InventoryItemORM.location,
    "updated_at": InventoryItemORM.updated_at,
    "created_at": InventoryItemORM.created_at,
}

CENTS = Decimal("0.01")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def persist(db: Session, *, commit: bool) -> None:
    if commit:
        db.commit()
    else:
        db.flush()

def abort(db: Session, *, commit: bool) -> None:
    # with commit=False the caller owns the transaction
    if commit:
        db.rollback()

def _user_to_schema(u: UserORM) -> UserPublic:
    return UserPublic(
        id=u.id,
        username=u.username,
        email=u.email,
        first_name=u.first_name,
        last_name=u.last_name,
        role=u.role,  # type: ignore
        created_at=u.created_at,
    )

def _category_to_schema(c: CategoryORM) -> Category:
    return Category(
        id=c.id,
        name=c.name,
        description=c.description,
        color=c.color,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )

def _item_to_brief(i: InventoryItemORM) -> InventoryItemBrief:
    return InventoryItemBrief(id=i.id, name=i.name, location=i.location)

def _item_to_schema(i: InventoryItemORM) -> InventoryItem:
    return InventoryItem(
        id=i.id,
        name=i.name,
        description=i.description,
        category_id=i.category_id,
        location=i.location,
        purchase_price=i.purchase_price,
        purchase_date=i.purchase_date,
        image_url=i.image_url,
        external_link=i.external_link,
        is_purchasable=i.is_purchasable,
        price_per_unit=i.price_per_unit,
        stock_quantity=i.stock_quantity,
        is_available=i.is_available,
        current_borrower_id=i.current_borrower_id,
        borrowed_at=i.borrowed_at,
        created_at=i.created_at,
        updated_at=i.updated_at,
        category=_category_to_schema(i.category) if i.category else None,
        current_borrower=_user_to_schema(i.current_borrower) if i.current_borrower else None,
    )

def _purchase_to_schema(p: PurchaseORM) -> Purchase:
    return Purchase(
        id=p.id,
        item_id=p.item_id,
        user_id=p.user_id,
        quantity=p.quantity,
        price_per_unit=p.price_per_unit,
        total_price=p.total_price,
        purchased_at=p.purchased_at,
        item=_item_to_brief(p.item) if p.item else None,
        user=_user_to_schema(p.user) if p.user else None,
    )

def _history_to_schema(h: BorrowingHistoryORM) -> BorrowingHistory:
    return BorrowingHistory(
        id=h.id,
        item_id=h.item_id,
        borrower_id=h.borrower_id,
        borrowed_at=h.borrowed_at,
        returned_at=h.returned_at,
        is_returned=h.is_returned,
        item=_item_to_brief(h.item) if h.item else None,
        borrower=_user_to_schema(h.borrower) if h.borrower else None,
    )

def _template_to_schema(t: NotificationTemplateORM) -> NotificationTemplate:
    return NotificationTemplate(
        id=t.id,
        type=t.type,  # type: ignore
        title=t.title,
        message=t.message,
        is_active=t.is_active,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


# ---------- User ----------
def username_exists(db: Session, username: str, exclude_user_id: Optional[str] = None) -> bool:
    stmt = select(UserORM.id).where(UserORM.username == username)
    if exclude_user_id:
        stmt = stmt.where(UserORM.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def email_exists(db: Session, email: str, exclude_user_id: Optional[str] = None) -> bool:
    stmt = select(UserORM.id).where(UserORM.email == email)
    if exclude_user_id:
        stmt = stmt.where(UserORM.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def get_user(db: Session, user_id: str) -> Optional[UserPublic]:
    row = db.get(UserORM, user_id)
    return _user_to_schema(row) if row else None


def get_user_by_username(db: Session, username: str) -> Optional[UserPublic]:
    row = db.execute(select(UserORM).where(UserORM.username == username)).scalar_one_or_none()
    return _user_to_schema(row) if row else None


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: str = "pending",
    commit: bool = True,
) -> UserPublic:
    username = (username or "").strip()
    if not username:
        raise InventoryError("username is empty")
    if username_exists(db, username):
        raise ConflictError("username already taken", status_code=409)
    if email and email_exists(db, email):
        raise ConflictError("email already registered", status_code=409)

    now = utcnow()
    u = UserORM(
        id=str(uuid4()),
        username=username,
        password_hash=get_password_hash(password),
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        created_at=now,
        updated_at=now,
    )
    db.add(u)
    persist(db, commit=commit)
    if commit:
        db.refresh(u)
    logger.info("user created username=%s role=%s", username, role)
    return _user_to_schema(u)


def authenticate_user(db: Session, username: str, password: str) -> Optional[UserPublic]:
    row = db.execute(select(UserORM).where(UserORM.username == username)).scalar_one_or_none()
    if not row or not verify_password(password, row.password_hash):
        return None
    return _user_to_schema(row)


def list_users(db: Session, *, role: Optional[str] = None) -> list[UserPublic]:
    stmt = select(UserORM)
    if role:
        stmt = stmt.where(UserORM.role == role)
    stmt = stmt.order_by(UserORM.created_at.desc())
    return [_user_to_schema(u) for u in db.execute(stmt).scalars().all()]


def list_admin_emails(db: Session) -> list[str]:
    rows = db.execute(
        select(UserORM.email).where(UserORM.role == "admin", UserORM.email.is_not(None))
    ).all()
    return [r[0] for r in rows if r[0] and r[0].strip()]


def _other_admin_exists(user_id: str):
    other = aliased(UserORM)
    return select(other.id).where(other.role == "admin", other.id != user_id).exists()


def update_user_role(db: Session, user_id: str, role: str, *, commit: bool = True) -> UserPublic:
    u = db.get(UserORM, user_id)
    if not u:
        raise NotFoundError("user not found")

    stmt = update(UserORM).where(UserORM.id == user_id)
    if role != "admin":
        # demoting an admin only matches while another admin remains
        stmt = stmt.where(or_(UserORM.role != "admin", _other_admin_exists(user_id)))

    result = db.execute(
        stmt.values(role=role, updated_at=utcnow()).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        abort(db, commit=commit)
        raise LastAdminError()
    db.expire(u)

    persist(db, commit=commit)
    if commit:
        db.refresh(u)
    logger.info("user role changed user_id=%s role=%s", user_id, role)
    return _user_to_schema(u)


def update_user_profile(db: Session, user_id: str, body: ProfileUpdate, *, commit: bool = True) -> UserPublic:
    u = db.get(UserORM, user_id)
    if not u:
        raise NotFoundError("user not found")

    data = body.model_dump(exclude_unset=True)
    if data.get("email") and email_exists(db, data["email"], exclude_user_id=user_id):
        raise ConflictError("email already registered", status_code=409)

    for k, v in data.items():
        setattr(u, k, v)
    u.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(u)
    return _user_to_schema(u)


def change_password(db: Session, user_id: str, current_password: str, new_password: str, *, commit: bool = True) -> bool:
    u = db.get(UserORM, user_id)
    if not u:
        raise NotFoundError("user not found")
    if not verify_password(current_password, u.password_hash):
        return False

    u.password_hash = get_password_hash(new_password)
    u.updated_at = utcnow()
    persist(db, commit=commit)
    return True


def delete_user(db: Session, user_id: str, *, commit: bool = True) -> None:
    u = db.get(UserORM, user_id)
    if not u:
        raise NotFoundError("user not found")

    borrowing = db.execute(
        select(func.count()).select_from(InventoryItemORM).where(InventoryItemORM.current_borrower_id == user_id)
    ).scalar_one()
    if int(borrowing) > 0:
        raise ConflictError("user still has borrowed items", status_code=409)

    purchases = db.execute(
        select(func.count()).select_from(PurchaseORM).where(PurchaseORM.user_id == user_id)
    ).scalar_one()
    history = db.execute(
        select(func.count()).select_from(BorrowingHistoryORM).where(BorrowingHistoryORM.borrower_id == user_id)
    ).scalar_one()
    if int(purchases) > 0 or int(history) > 0:
        raise ConflictError("user is referenced by purchases or borrowing history", status_code=409)

    result = db.execute(
        delete(UserORM).where(
            UserORM.id == user_id,
            or_(UserORM.role != "admin", _other_admin_exists(user_id)),
        )
    )
    if result.rowcount == 0:
        abort(db, commit=commit)
        raise LastAdminError()
    persist(db, commit=commit)
    logger.info("user deleted user_id=%s", user_id)


def ensure_default_admin(
    db: Session,
    *,
    username: str,
    password: str,
    email: Optional[str] = None,
) -> bool:
    """Create the bootstrap admin account unless a user with that name exists."""
    if username_exists(db, username):
        return False
    create_user(
        db,
        username=username,
        password=password,
        email=email,
        first_name="Workshop",
        last_name="Administrator",
        role="admin",
    )
    logger.info("default admin user created username=%s", username)
    return True


# ---------- Category ----------
def category_name_exists(db: Session, name: str, exclude_category_id: Optional[str] = None) -> bool:
    stmt = select(CategoryORM.id).where(CategoryORM.name == name)
    if exclude_category_id:
        stmt = stmt.where(CategoryORM.id != exclude_category_id)
    return db.execute(stmt).first() is not None


def list_categories(db: Session) -> list[Category]:
    rows = db.execute(select(CategoryORM).order_by(CategoryORM.name.asc())).scalars().all()
    return [_category_to_schema(c) for c in rows]


def get_category(db: Session, category_id: str) -> Optional[Category]:
    row = db.get(CategoryORM, category_id)
    return _category_to_schema(row) if row else None


def create_category(db: Session, body: CategoryIn, *, commit: bool = True) -> Category:
    name = body.name.strip()
    if not name:
        raise InventoryError("category name is empty")
    if category_name_exists(db, name):
        raise ConflictError("category already exists", status_code=409)

    now = utcnow()
    c = CategoryORM(
        id=str(uuid4()),
        name=name,
        description=body.description,
        color=body.color,
        created_at=now,
        updated_at=now,
    )
    db.add(c)
    persist(db, commit=commit)
    if commit:
        db.refresh(c)
    return _category_to_schema(c)


def update_category(db: Session, category_id: str, body: CategoryUpdate, *, commit: bool = True) -> Optional[Category]:
    c = db.get(CategoryORM, category_id)
    if not c:
        return None

    data = body.model_dump(exclude_unset=True)
    if "name" in data:
        data["name"] = (data["name"] or "").strip()
        if not data["name"]:
            raise InventoryError("category name is empty")
        if category_name_exists(db, data["name"], exclude_category_id=category_id):
            raise ConflictError("category already exists", status_code=409)

    for k, v in data.items():
        if v is None and k in ("name", "color"):
            continue
        setattr(c, k, v)
    c.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(c)
    return _category_to_schema(c)


def delete_category(db: Session, category_id: str, *, commit: bool = True) -> bool:
    c = db.get(CategoryORM, category_id)
    if not c:
        return False

    used = db.execute(
        select(func.count()).select_from(InventoryItemORM).where(InventoryItemORM.category_id == category_id)
    ).scalar_one()
    if int(used) > 0:
        raise ConflictError("category is still used by inventory items", status_code=409)

    db.execute(delete(CategoryORM).where(CategoryORM.id == category_id))
    persist(db, commit=commit)
    return True


# ---------- Inventory ----------
def get_item(db: Session, item_id: str) -> Optional[InventoryItem]:
    row = db.get(InventoryItemORM, item_id)
    return _item_to_schema(row) if row else None


def _require_category(db: Session, category_id: str) -> None:
    if not db.get(CategoryORM, category_id):
        raise InventoryError("unknown category")


def create_item(db: Session, body: InventoryItemIn, *, commit: bool = True) -> InventoryItem:
    _require_category(db, body.category_id)

    now = utcnow()
    i = InventoryItemORM(
        id=str(uuid4()),
        name=body.name,
        description=body.description,
        category_id=body.category_id,
        location=body.location,
        purchase_price=body.purchase_price,
        purchase_date=body.purchase_date,
        image_url=body.image_url,
        external_link=body.external_link,
        is_purchasable=body.is_purchasable,
        price_per_unit=body.price_per_unit,
        stock_quantity=body.stock_quantity,
        is_available=True,
        current_borrower_id=None,
        borrowed_at=None,
        created_at=now,
        updated_at=now,
    )
    db.add(i)
    persist(db, commit=commit)
    if commit:
        db.refresh(i)
    return _item_to_schema(i)


def update_item(db: Session, item_id: str, body: InventoryItemUpdate, *, commit: bool = True) -> Optional[InventoryItem]:
    i = db.get(InventoryItemORM, item_id)
    if not i:
        return None

    data = body.model_dump(exclude_unset=True)
    if data.get("category_id"):
        _require_category(db, data["category_id"])

    for k, v in data.items():
        if v is None and k in ("name", "category_id", "location", "is_purchasable", "stock_quantity"):
            continue
        setattr(i, k, v)
    i.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(i)
    return _item_to_schema(i)


def delete_item(db: Session, item_id: str, *, commit: bool = True) -> bool:
    i = db.get(InventoryItemORM, item_id)
    if not i:
        return False

    purchases = db.execute(
        select(func.count()).select_from(PurchaseORM).where(PurchaseORM.item_id == item_id)
    ).scalar_one()
    history = db.execute(
        select(func.count()).select_from(BorrowingHistoryORM).where(BorrowingHistoryORM.item_id == item_id)
    ).scalar_one()
    if int(purchases) > 0 or int(history) > 0:
        raise ConflictError("item is referenced by purchases or borrowing history", status_code=409)

    db.execute(delete(InventoryItemORM).where(InventoryItemORM.id == item_id))
    persist(db, commit=commit)
    return True


def build_items_query(q: str | None, category_id: str | None, available: bool | None):
    stmt = select(InventoryItemORM)

    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                InventoryItemORM.name.ilike(like),
                InventoryItemORM.description.ilike(like),
                InventoryItemORM.location.ilike(like),
            )
        )
    if category_id:
        stmt = stmt.where(InventoryItemORM.category_id == category_id)

    if available is not None:
        stmt = stmt.where(InventoryItemORM.is_available.is_(available))

    return stmt

def count_items_filtered(db: Session, *, q: str | None, category_id: str | None, available: bool | None) -> int:
    # count on the bare table, the joined eager loads only matter for rows
    stmt = select(func.count()).select_from(InventoryItemORM)
    where = build_items_query(q, category_id, available).whereclause
    if where is not None:
        stmt = stmt.where(where)
    return int(db.execute(stmt).scalar_one())

def items_meta(
    db: Session,
    *,
    q: str | None,
    category_id: str | None,
    available: bool | None,
    limit: int,
    offset: int,
) -> dict:
    total = count_items_filtered(db, q=q, category_id=category_id, available=available)
    total_pages = max(1, (total + limit - 1) // limit)

    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "total_pages": total_pages,
    }

def list_items_filtered(
    db: Session,
    *,
    q: str | None = None,
    category_id: str | None = None,
    available: bool | None = None,
    sort: str = "name",
    order: str = "asc",
    limit: int = 500,
    offset: int = 0,
) -> list[InventoryItem]:
    stmt = build_items_query(q, category_id, available)

    col = ALLOWED_SORTS.get(sort, InventoryItemORM.name)
    desc = (order or "").lower() == "desc"
    stmt = stmt.order_by(col.desc() if desc else col.asc())

    stmt = stmt.limit(limit).offset(offset)
    rows = db.execute(stmt).scalars().all()
    return [_item_to_schema(i) for i in rows]


# ---------- Borrowing ----------
def get_open_history(db: Session, item_id: str) -> Optional[BorrowingHistory]:
    stmt = (
        select(BorrowingHistoryORM)
        .where(BorrowingHistoryORM.item_id == item_id, BorrowingHistoryORM.is_returned.is_(False))
        .order_by(BorrowingHistoryORM.borrowed_at.desc())
        .limit(1)
    )
    row = db.execute(stmt).scalars().first()
    return _history_to_schema(row) if row else None


def borrow_item(db: Session, item_id: str, borrower_id: str, *, commit: bool = True) -> BorrowingHistory:
    """Mark an item as borrowed and open a history row for it.

    The availability check is part of the UPDATE itself, so of two
    concurrent borrows of the same item only one matches the row.
    Raises NotFoundError for an unknown item or borrower and
    ConflictError when the item is already borrowed.
    """
    i = db.get(InventoryItemORM, item_id)
    if not i:
        raise NotFoundError("item not found")
    if not db.get(UserORM, borrower_id):
        raise NotFoundError("user not found")

    now = utcnow()
    result = db.execute(
        update(InventoryItemORM)
        .where(InventoryItemORM.id == item_id, InventoryItemORM.is_available.is_(True))
        .values(
            is_available=False,
            current_borrower_id=borrower_id,
            borrowed_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        abort(db, commit=commit)
        logger.info("borrow refused item_id=%s borrower_id=%s reason=unavailable", item_id, borrower_id)
        raise ConflictError("item is not available for borrowing")

    h = BorrowingHistoryORM(
        id=str(uuid4()),
        item_id=item_id,
        borrower_id=borrower_id,
        borrowed_at=now,
        returned_at=None,
        is_returned=False,
    )
    db.add(h)
    db.expire(i)

    persist(db, commit=commit)
    if commit:
        db.refresh(h)
    logger.info("item borrowed item_id=%s borrower_id=%s", item_id, borrower_id)
    return _history_to_schema(h)


def return_item(db: Session, item_id: str, *, commit: bool = True) -> Optional[BorrowingHistory]:
    """Release an item and close its open history row.

    The item is made available even when no open row exists; that case
    means the ledger drifted from the item state and is logged.
    Returns the closed history row, if any.
    """
    i = db.get(InventoryItemORM, item_id)
    if not i:
        raise NotFoundError("item not found")

    now = utcnow()
    db.execute(
        update(InventoryItemORM)
        .where(InventoryItemORM.id == item_id)
        .values(
            is_available=True,
            current_borrower_id=None,
            borrowed_at=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    open_rows = db.execute(
        select(BorrowingHistoryORM)
        .where(BorrowingHistoryORM.item_id == item_id, BorrowingHistoryORM.is_returned.is_(False))
        .order_by(BorrowingHistoryORM.borrowed_at.desc())
    ).scalars().all()

    if not open_rows:
        logger.warning("return without open borrowing history item_id=%s", item_id)
    elif len(open_rows) > 1:
        logger.warning("closing %s open borrowing history rows item_id=%s", len(open_rows), item_id)

    for h in open_rows:
        h.returned_at = now
        h.is_returned = True
    db.expire(i)

    persist(db, commit=commit)
    logger.info("item returned item_id=%s", item_id)
    if not open_rows:
        return None
    if commit:
        db.refresh(open_rows[0])
    return _history_to_schema(open_rows[0])


def list_borrowing_history(db: Session, *, borrower_id: Optional[str] = None) -> list[BorrowingHistory]:
    stmt = select(BorrowingHistoryORM)
    if borrower_id:
        stmt = stmt.where(BorrowingHistoryORM.borrower_id == borrower_id)
    stmt = stmt.order_by(BorrowingHistoryORM.borrowed_at.desc())
    return [_history_to_schema(h) for h in db.execute(stmt).scalars().all()]


# ---------- Purchase ----------
def purchase_item(
    db: Session,
    item_id: str,
    user_id: str,
    quantity: int,
    price_per_unit: Optional[Decimal] = None,
    *,
    commit: bool = True,
) -> Purchase:
    """Record a purchase and take its quantity out of stock.

    The stock check and the decrement are one conditional UPDATE, so
    concurrent purchases can never drive stock below zero.
    """
    if quantity < 1:
        raise InventoryError("quantity must be at least 1")

    i = db.get(InventoryItemORM, item_id)
    if not i:
        raise NotFoundError("item not found")
    if not i.is_purchasable:
        raise ConflictError("item is not purchasable")

    unit_price = price_per_unit if price_per_unit is not None else i.price_per_unit
    if unit_price is None:
        raise ConflictError("item price not set")
    unit_price = Decimal(unit_price).quantize(CENTS, rounding=ROUND_HALF_UP)

    now = utcnow()
    result = db.execute(
        update(InventoryItemORM)
        .where(InventoryItemORM.id == item_id, InventoryItemORM.stock_quantity >= quantity)
        .values(
            stock_quantity=InventoryItemORM.stock_quantity - quantity,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        available = db.execute(
            select(InventoryItemORM.stock_quantity).where(InventoryItemORM.id == item_id)
        ).scalar_one()
        abort(db, commit=commit)
        logger.info(
            "purchase refused item_id=%s user_id=%s quantity=%s stock=%s",
            item_id, user_id, quantity, available,
        )
        raise InsufficientStockError(quantity, int(available or 0))

    p = PurchaseORM(
        id=str(uuid4()),
        item_id=item_id,
        user_id=user_id,
        quantity=quantity,
        price_per_unit=unit_price,
        total_price=(unit_price * quantity).quantize(CENTS, rounding=ROUND_HALF_UP),
        purchased_at=now,
    )
    db.add(p)
    db.expire(i)

    persist(db, commit=commit)
    if commit:
        db.refresh(p)
    logger.info("item purchased item_id=%s user_id=%s quantity=%s", item_id, user_id, quantity)
    return _purchase_to_schema(p)


def list_purchases(db: Session, *, user_id: Optional[str] = None) -> list[Purchase]:
    stmt = select(PurchaseORM)
    if user_id:
        stmt = stmt.where(PurchaseORM.user_id == user_id)
    stmt = stmt.order_by(PurchaseORM.purchased_at.desc())
    return [_purchase_to_schema(p) for p in db.execute(stmt).scalars().all()]


# ---------- Statistics ----------
def get_stats(db: Session) -> Stats:
    def count(model, *where) -> int:
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        return int(db.execute(stmt).scalar_one())

    return Stats(
        total_items=count(InventoryItemORM),
        borrowed_items=count(InventoryItemORM, InventoryItemORM.is_available.is_(False)),
        available_items=count(InventoryItemORM, InventoryItemORM.is_available.is_(True)),
        total_users=count(UserORM),
        total_categories=count(CategoryORM),
    )


# ---------- Notification templates ----------
def list_templates(db: Session) -> list[NotificationTemplate]:
    rows = db.execute(
        select(NotificationTemplateORM)
        .order_by(NotificationTemplateORM.type.asc(), NotificationTemplateORM.created_at.asc())
    ).scalars().all()
    return [_template_to_schema(t) for t in rows]


def get_template(db: Session, template_id: str) -> Optional[NotificationTemplate]:
    row = db.get(NotificationTemplateORM, template_id)
    return _template_to_schema(row) if row else None


def get_active_template(db: Session, template_type: str) -> Optional[NotificationTemplate]:
    row = db.execute(
        select(NotificationTemplateORM)
        .where(NotificationTemplateORM.type == template_type, NotificationTemplateORM.is_active.is_(True))
        .order_by(NotificationTemplateORM.updated_at.desc())
        .limit(1)
    ).scalars().first()
    return _template_to_schema(row) if row else None


def create_template(db: Session, body: NotificationTemplateIn, *, commit: bool = True) -> NotificationTemplate:
    now = utcnow()
    t = NotificationTemplateORM(
        id=str(uuid4()),
        type=body.type,
        title=body.title,
        message=body.message,
        is_active=body.is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(t)
    persist(db, commit=commit)
    if commit:
        db.refresh(t)
    return _template_to_schema(t)


def update_template(
    db: Session, template_id: str, body: NotificationTemplateUpdate, *, commit: bool = True
) -> Optional[NotificationTemplate]:
    t = db.get(NotificationTemplateORM, template_id)
    if not t:
        return None

    for k, v in body.model_dump(exclude_unset=True).items():
        if v is None:
            continue
        setattr(t, k, v)
    t.updated_at = utcnow()

    persist(db, commit=commit)
    if commit:
        db.refresh(t)
    return _template_to_schema(t)


def delete_template(db: Session, template_id: str, *, commit: bool = True) -> bool:
    result = db.execute(delete(NotificationTemplateORM).where(NotificationTemplateORM.id == template_id))
    persist(db, commit=commit)
    return result.rowcount > 0
