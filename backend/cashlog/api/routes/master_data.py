from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashlog.api.deps import db, require_org, page_params, type_filter
from cashlog.core.security import Principal
from cashlog.schemas.common import page_meta
from cashlog.schemas.master_data import (
    CategoryCreate,
    CategoryOut,
    CategoryPage,
    CategoryUpdate,
    MasterItemCreate,
    MasterItemOut,
    MasterItemPage,
    MasterItemUpdate,
    RelatedPartyCreate,
    RelatedPartyOut,
    RelatedPartyPage,
    RelatedPartyUpdate,
)
from cashlog.services import master_data as md


def _build_router(kind: md.MasterKind, prefix: str, tag: str, create_schema, update_schema, out_schema, page_schema):
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=page_schema)
    def list_(
        search: str | None = Query(None),
        type: str | None = Query(None),
        page: int = Query(1, ge=1),
        page_size: int | None = Query(None, alias="pageSize", ge=1),
        s: Session = Depends(db),
        u: Principal = Depends(require_org),
    ):
        page, page_size = page_params(page, page_size)
        rows, total = md.list_records(s, kind, u.organization_id, search, type_filter(type), page, page_size)
        return page_schema(data=[out_schema.model_validate(r) for r in rows], meta=page_meta(total, page, page_size))

    @router.get("/all", response_model=list[out_schema])
    def all_(
        type: str | None = Query(None),
        s: Session = Depends(db),
        u: Principal = Depends(require_org),
    ):
        return md.all_records(s, kind, u.organization_id, type_filter(type))

    @router.post("", response_model=out_schema, status_code=201)
    def create(body: create_schema, s: Session = Depends(db), u: Principal = Depends(require_org)):
        return md.create_record(s, kind, u.organization_id, u.user_id, body.model_dump())

    @router.get("/{record_id}", response_model=out_schema)
    def get(record_id: str, s: Session = Depends(db), u: Principal = Depends(require_org)):
        return md.get_record(s, kind, u.organization_id, record_id)

    @router.put("/{record_id}", response_model=out_schema)
    def update(record_id: str, body: update_schema, s: Session = Depends(db), u: Principal = Depends(require_org)):
        return md.update_record(s, kind, u.organization_id, u.user_id, record_id, body.model_dump(exclude_unset=True))

    @router.delete("/{record_id}")
    def delete(record_id: str, s: Session = Depends(db), u: Principal = Depends(require_org)):
        md.delete_record(s, kind, u.organization_id, u.user_id, record_id)
        return {"ok": True}

    return router


categories_router = _build_router(
    md.CATEGORY, "/api/categories", "categories", CategoryCreate, CategoryUpdate, CategoryOut, CategoryPage
)
related_parties_router = _build_router(
    md.RELATED_PARTY,
    "/api/related-parties",
    "related-parties",
    RelatedPartyCreate,
    RelatedPartyUpdate,
    RelatedPartyOut,
    RelatedPartyPage,
)
master_items_router = _build_router(
    md.MASTER_ITEM,
    "/api/master-items",
    "master-items",
    MasterItemCreate,
    MasterItemUpdate,
    MasterItemOut,
    MasterItemPage,
)
