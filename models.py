from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime
from decimal import Decimal

Role = Literal["admin", "user", "pending"]
AssignableRole = Literal["admin", "user"]
TemplateType = Literal["purchase", "borrow"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(v):
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


# ---------- User ----------
class UserPublic(ApiModel):
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    created_at: datetime

class RegisterIn(ApiModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=6)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

class UserCreate(RegisterIn):
    role: AssignableRole = "user"

class LoginIn(ApiModel):
    username: str
    password: str

class ProfileUpdate(ApiModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

class PasswordChange(ApiModel):
    current_password: str
    new_password: str = Field(min_length=6)

class RoleUpdate(ApiModel):
    role: AssignableRole

class ActivateIn(ApiModel):
    role: AssignableRole = "user"


# ---------- Category ----------
class CategoryIn(ApiModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    color: str = Field(default="#1976D2", pattern=r"^#[0-9A-Fa-f]{6}$")

class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")

class Category(CategoryIn):
    id: str
    created_at: datetime
    updated_at: datetime


# ---------- Inventory ----------
class InventoryItemIn(ApiModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category_id: str
    location: str = Field(min_length=1)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    purchase_date: Optional[datetime] = None
    image_url: Optional[str] = None
    external_link: Optional[str] = None
    is_purchasable: bool = False
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    stock_quantity: int = Field(default=1, ge=0)

    @field_validator("purchase_price", "purchase_date", "price_per_unit", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

class InventoryItemUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=1)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    purchase_date: Optional[datetime] = None
    image_url: Optional[str] = None
    external_link: Optional[str] = None
    is_purchasable: Optional[bool] = None
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    stock_quantity: Optional[int] = Field(default=None, ge=0)

    @field_validator("purchase_price", "purchase_date", "price_per_unit", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

class InventoryItemBrief(ApiModel):
    id: str
    name: str
    location: str

class InventoryItem(InventoryItemIn):
    id: str
    is_available: bool = True
    current_borrower_id: Optional[str] = None
    borrowed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    category: Optional[Category] = None
    current_borrower: Optional[UserPublic] = None

class InventoryMeta(ApiModel):
    total: int
    limit: int
    offset: int
    total_pages: int


# ---------- Purchase / Borrowing ----------
class PurchaseIn(ApiModel):
    item_id: str
    quantity: int = Field(default=1, ge=1)
    price_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    # accepted for compatibility, always recomputed
    total_price: Optional[Decimal] = None

class ItemPurchaseIn(ApiModel):
    quantity: int = Field(default=1, ge=1)

class Purchase(ApiModel):
    id: str
    item_id: str
    user_id: str
    quantity: int
    price_per_unit: Decimal
    total_price: Decimal
    purchased_at: datetime

    item: Optional[InventoryItemBrief] = None
    user: Optional[UserPublic] = None

class BorrowingHistory(ApiModel):
    id: str
    item_id: str
    borrower_id: str
    borrowed_at: datetime
    returned_at: Optional[datetime] = None
    is_returned: bool = False

    item: Optional[InventoryItemBrief] = None
    borrower: Optional[UserPublic] = None


# ---------- Notification templates ----------
class NotificationTemplateIn(ApiModel):
    type: TemplateType
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    is_active: bool = True

class NotificationTemplateUpdate(ApiModel):
    type: Optional[TemplateType] = None
    title: Optional[str] = Field(default=None, min_length=1)
    message: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None

class NotificationTemplate(NotificationTemplateIn):
    id: str
    created_at: datetime
    updated_at: datetime


# ---------- Responses ----------
class BorrowResult(ApiModel):
    success: bool = True
    notification: Optional[NotificationTemplate] = None

class ReturnResult(ApiModel):
    success: bool = True

class PurchaseResult(Purchase):
    notification: Optional[NotificationTemplate] = None

class Stats(ApiModel):
    total_items: int
    borrowed_items: int
    available_items: int
    total_users: int
    total_categories: int
