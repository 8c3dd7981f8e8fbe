"""Categories, related parties and master items.

The three share one shape (name unique per organization and type), so one set
of helpers serves all of them, parameterised by a ``MasterKind``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cashlog.core.errors import ConflictError, Forbidden, NotFound, ValidationError
from cashlog.db.uow import unit_of_work
from cashlog.models.category import Category
from cashlog.models.master_item import MasterItem
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Item, Transaction
from cashlog.services.audit import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MasterKind:
    entity: str
    label: str
    model: type
    ref_column: object


CATEGORY = MasterKind("category", "Category", Category, Transaction.category_id)
RELATED_PARTY = MasterKind("related_party", "Related party", RelatedParty, Transaction.related_party_id)
MASTER_ITEM = MasterKind("master_item", "Master item", MasterItem, Item.master_item_id)


def _search_filter(kind: MasterKind, organization_id: str, search: str | None, tx_type: str | None):
    m = kind.model
    conds = [m.organization_id == organization_id]
    if tx_type:
        conds.append(m.type == tx_type)
    if search:
        conds.append(func.lower(m.name).contains(search.strip().lower()))
    return conds


def list_records(
    s: Session,
    kind: MasterKind,
    organization_id: str,
    search: str | None,
    tx_type: str | None,
    page: int,
    page_size: int,
):
    m = kind.model
    conds = _search_filter(kind, organization_id, search, tx_type)
    total = s.execute(select(func.count()).select_from(m).where(*conds)).scalar_one()
    rows = (
        s.execute(
            select(m)
            .where(*conds)
            .order_by(m.name.asc(), m.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return rows, int(total)


def all_records(s: Session, kind: MasterKind, organization_id: str, tx_type: str | None = None):
    m = kind.model
    conds = _search_filter(kind, organization_id, None, tx_type)
    return s.execute(select(m).where(*conds).order_by(m.name.asc())).scalars().all()


def get_record(s: Session, kind: MasterKind, organization_id: str, record_id: str):
    m = kind.model
    rec = s.execute(select(m).where(m.id == record_id)).scalar_one_or_none()
    if rec is None:
        raise NotFound(f"{kind.label} not found", code=f"{kind.entity}_not_found")
    if rec.organization_id != organization_id:
        raise Forbidden(f"You do not have permission to access this {kind.label.lower()}")
    return rec


def _clean_name(name: str | None) -> str:
    nm = (name or "").strip()
    if not nm:
        raise ValidationError({"name": ["name is required"]})
    if len(nm) > 128:
        raise ValidationError({"name": ["name too long"]})
    return nm


def _ensure_unique(s: Session, kind: MasterKind, organization_id: str, tx_type: str, name: str, exclude_id: str | None = None):
    m = kind.model
    q = select(m.id).where(m.organization_id == organization_id, m.type == tx_type, m.name == name)
    if exclude_id is not None:
        q = q.where(m.id != exclude_id)
    if s.execute(q).first() is not None:
        raise ConflictError(
            f"{kind.label} with that name already exists for the same type", code=f"{kind.entity}_exists"
        )


def create_record(s: Session, kind: MasterKind, organization_id: str, user_id: str, fields: dict):
    name = _clean_name(fields.get("name"))
    tx_type = fields.get("type") or "expense"
    _ensure_unique(s, kind, organization_id, tx_type, name)

    rec = kind.model(
        **{**fields, "name": name, "type": tx_type},
        organization_id=organization_id,
        user_id=user_id,
    )
    with unit_of_work(s, conflict_code=f"{kind.entity}_exists"):
        s.add(rec)
        s.flush()
        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action=f"{kind.entity}.create",
            entity_type=kind.entity,
            entity_id=rec.id,
            details={"name": name, "type": tx_type},
        )
    s.refresh(rec)
    logger.info("created %s %s org=%s", kind.entity, rec.id, organization_id)
    return rec


def update_record(s: Session, kind: MasterKind, organization_id: str, user_id: str, record_id: str, changes: dict):
    rec = get_record(s, kind, organization_id, record_id)

    name = _clean_name(changes["name"]) if changes.get("name") is not None else rec.name
    tx_type = changes.get("type") or rec.type
    if name != rec.name or tx_type != rec.type:
        _ensure_unique(s, kind, organization_id, tx_type, name, exclude_id=rec.id)

    if tx_type != rec.type and _in_use(s, kind, rec.id):
        raise ConflictError(
            f"{kind.label} is used by existing transactions; its type cannot change", code=f"{kind.entity}_in_use"
        )

    with unit_of_work(s, conflict_code=f"{kind.entity}_exists"):
        for k, v in changes.items():
            if v is not None:
                setattr(rec, k, v)
        rec.name = name
        rec.type = tx_type
        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action=f"{kind.entity}.update",
            entity_type=kind.entity,
            entity_id=rec.id,
            details={k: str(v) for k, v in changes.items() if v is not None},
        )
    s.refresh(rec)
    return rec


def _in_use(s: Session, kind: MasterKind, record_id: str) -> bool:
    return s.execute(select(kind.ref_column).where(kind.ref_column == record_id).limit(1)).first() is not None


def delete_record(s: Session, kind: MasterKind, organization_id: str, user_id: str, record_id: str) -> None:
    rec = get_record(s, kind, organization_id, record_id)
    # history must keep resolving: referenced rows stay
    if _in_use(s, kind, rec.id):
        raise ConflictError(
            f"{kind.label} is used by existing transactions and cannot be deleted", code=f"{kind.entity}_in_use"
        )

    details = {"name": rec.name, "type": rec.type}
    with unit_of_work(s):
        s.delete(rec)
        log_event(
            s,
            organization_id=organization_id,
            user_id=user_id,
            action=f"{kind.entity}.delete",
            entity_type=kind.entity,
            entity_id=record_id,
            details=details,
        )
    logger.info("deleted %s %s org=%s", kind.entity, record_id, organization_id)
