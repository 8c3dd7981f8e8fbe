from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from cashlog.schemas.common import ApiModel, PageMeta, TxType, trim_or_none


class _MasterIn(ApiModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    type: TxType = "expense"

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        return trim_or_none(v)


class _MasterUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    type: TxType | None = None

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str | None):
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class _MasterOut(ApiModel):
    id: str
    name: str
    description: str | None
    type: TxType
    organization_id: str
    user_id: str
    created_at: datetime
    updated_at: datetime | None = None


class CategoryCreate(_MasterIn):
    pass


class CategoryUpdate(_MasterUpdate):
    pass


class CategoryOut(_MasterOut):
    pass


class RelatedPartyCreate(_MasterIn):
    pass


class RelatedPartyUpdate(_MasterUpdate):
    pass


class RelatedPartyOut(_MasterOut):
    pass


class MasterItemCreate(_MasterIn):
    default_price: Decimal = Field(default=Decimal("0"), ge=0, allow_inf_nan=False)


class MasterItemUpdate(_MasterUpdate):
    default_price: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)


class MasterItemOut(_MasterOut):
    default_price: float


class CategoryPage(ApiModel):
    data: list[CategoryOut]
    meta: PageMeta


class RelatedPartyPage(ApiModel):
    data: list[RelatedPartyOut]
    meta: PageMeta


class MasterItemPage(ApiModel):
    data: list[MasterItemOut]
    meta: PageMeta
