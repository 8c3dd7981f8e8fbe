from datetime import date, datetime
import datetime as _dt
from decimal import Decimal

from pydantic import Field, field_validator

from cashlog.schemas.common import ApiModel, PageMeta, TxType, trim_or_none
from cashlog.services.posting import Posting, PostingItem, TransactionChanges


class ItemIn(ApiModel):
    name: str = Field(min_length=1)
    item_price: Decimal = Field(ge=0, allow_inf_nan=False)
    quantity: int = Field(ge=1)
    master_item_id: str | None = None

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("item name is required")
        return v

    def to_posting_item(self) -> PostingItem:
        return PostingItem(
            name=self.name,
            item_price=self.item_price,
            quantity=self.quantity,
            master_item_id=self.master_item_id,
        )


class TxCreate(ApiModel):
    date: date
    type: TxType = "expense"
    description: str
    category_id: str = Field(min_length=1)
    related_party_id: str = Field(min_length=1)
    amount_total: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    payment_img: str | None = None
    items: list[ItemIn] = Field(min_length=1)

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("description is required")
        return v

    @field_validator("payment_img")
    @classmethod
    def payment_img_trim(cls, v: str | None):
        return trim_or_none(v)

    def to_posting(self, organization_id: str, user_id: str) -> Posting:
        return Posting(
            organization_id=organization_id,
            user_id=user_id,
            date=self.date,
            type=self.type,
            description=self.description,
            category_id=self.category_id,
            related_party_id=self.related_party_id,
            amount_total=self.amount_total,
            payment_img=self.payment_img,
            items=[i.to_posting_item() for i in self.items],
        )


class TxUpdate(ApiModel):
    date: _dt.date | None = None
    type: TxType | None = None
    description: str | None = None
    category_id: str | None = None
    related_party_id: str | None = None
    amount_total: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    payment_img: str | None = None
    items: list[ItemIn] | None = Field(default=None, min_length=1)

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v

    def to_changes(self) -> TransactionChanges:
        return TransactionChanges(
            date=self.date,
            type=self.type,
            description=self.description,
            category_id=self.category_id,
            related_party_id=self.related_party_id,
            amount_total=self.amount_total,
            payment_img=self.payment_img,
            items=[i.to_posting_item() for i in self.items] if self.items is not None else None,
        )


class ItemOut(ApiModel):
    id: str
    name: str
    item_price: float
    quantity: int
    total_price: float
    master_item_id: str | None


class TxOut(ApiModel):
    id: str
    date: date
    type: TxType
    description: str
    amount_total: float
    payment_img: str | None
    organization_id: str
    user_id: str
    category_id: str
    category_name: str | None = None
    related_party_id: str
    related_party_name: str | None = None
    month_history_id: str | None
    created_at: datetime
    updated_at: datetime | None = None
    items: list[ItemOut] = []


def tx_out(t) -> TxOut:
    return TxOut(
        id=t.id,
        date=t.date,
        type=t.type,
        description=t.description,
        amount_total=float(t.amount_total),
        payment_img=t.payment_img,
        organization_id=t.organization_id,
        user_id=t.user_id,
        category_id=t.category_id,
        category_name=t.category.name if t.category is not None else None,
        related_party_id=t.related_party_id,
        related_party_name=t.related_party.name if t.related_party is not None else None,
        month_history_id=t.month_history_id,
        created_at=t.created_at,
        updated_at=t.updated_at,
        items=[ItemOut.model_validate(i) for i in t.items],
    )


class TxCreated(ApiModel):
    message: str
    transaction: TxOut


class TxPage(ApiModel):
    data: list[TxOut]
    meta: PageMeta


class BulkDeleteIn(ApiModel):
    ids: list[str] = Field(min_length=1)


class BulkDeleteOut(ApiModel):
    message: str
    deleted: list[str]
    skipped: list[str]
