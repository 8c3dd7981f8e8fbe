from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

TxType = Literal["income", "expense"]


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PageMeta(ApiModel):
    total_items: int
    total_pages: int
    current_page: int
    page_size: int


def page_meta(total: int, page: int, page_size: int) -> PageMeta:
    pages = (total + page_size - 1) // page_size if page_size else 0
    return PageMeta(total_items=total, total_pages=pages, current_page=page, page_size=page_size)


def trim_or_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None
