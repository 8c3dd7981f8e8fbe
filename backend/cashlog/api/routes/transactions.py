from fastapi import APIRouter, Depends, Query, Response
from datetime import date
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func, or_

from cashlog.api.deps import db, require_org, page_params, org_display_name, type_filter
from cashlog.core.security import Principal
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Transaction
from cashlog.schemas.common import page_meta
from cashlog.schemas.transaction import (
    BulkDeleteIn,
    BulkDeleteOut,
    TxCreate,
    TxCreated,
    TxOut,
    TxPage,
    TxUpdate,
    tx_out,
)
from cashlog.services import dashboard
from cashlog.services.invoice import invoice_filename, render_invoice
from cashlog.services.posting import (
    bulk_delete_transactions,
    delete_transaction,
    get_owned_transaction,
    post_transaction,
    update_transaction,
)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=TxPage)
def list_transactions(
    search: str | None = Query(None),
    type: str | None = Query(None),
    category_id: str | None = Query(None, alias="categoryId"),
    related_party_id: str | None = Query(None, alias="relatedPartyId"),
    start: date | None = Query(None, alias="from"),
    end: date | None = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    page, page_size = page_params(page, page_size)
    tx_type = type_filter(type)

    conds = [Transaction.organization_id == u.organization_id]
    if tx_type:
        conds.append(Transaction.type == tx_type)
    if category_id and category_id != "all":
        conds.append(Transaction.category_id == category_id)
    if related_party_id and related_party_id != "all":
        conds.append(Transaction.related_party_id == related_party_id)
    if start is not None:
        conds.append(Transaction.date >= start)
    if end is not None:
        conds.append(Transaction.date <= end)
    if search and search.strip():
        needle = search.strip().lower()
        party_ids = select(RelatedParty.id).where(
            RelatedParty.organization_id == u.organization_id,
            func.lower(RelatedParty.name).contains(needle),
        )
        conds.append(
            or_(
                func.lower(Transaction.description).contains(needle),
                Transaction.related_party_id.in_(party_ids),
            )
        )

    total = s.execute(select(func.count(Transaction.id)).where(*conds)).scalar_one()
    txs = (
        s.execute(
            select(Transaction)
            .options(selectinload(Transaction.items))
            .where(*conds)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return TxPage(data=[tx_out(t) for t in txs], meta=page_meta(int(total), page, page_size))


@router.post("", response_model=TxCreated, status_code=201)
def create_transaction(body: TxCreate, s: Session = Depends(db), u: Principal = Depends(require_org)):
    t = post_transaction(s, body.to_posting(u.organization_id, u.user_id))
    return TxCreated(message="Transaction created", transaction=tx_out(t))


@router.get("/recent", response_model=list[TxOut])
def recent_transactions(
    limit: int = Query(10, ge=1, le=50),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    return [tx_out(t) for t in dashboard.recent(s, u.organization_id, limit)]


@router.post("/bulk-delete", response_model=BulkDeleteOut)
def bulk_delete(body: BulkDeleteIn, s: Session = Depends(db), u: Principal = Depends(require_org)):
    deleted, skipped = bulk_delete_transactions(s, u.organization_id, u.user_id, body.ids)
    return BulkDeleteOut(message="Transactions deleted successfully", deleted=deleted, skipped=skipped)


@router.get("/{tx_id}", response_model=TxOut)
def get_transaction(tx_id: str, s: Session = Depends(db), u: Principal = Depends(require_org)):
    return tx_out(get_owned_transaction(s, u.organization_id, tx_id))


@router.put("/{tx_id}", response_model=TxOut)
def put_transaction(tx_id: str, body: TxUpdate, s: Session = Depends(db), u: Principal = Depends(require_org)):
    t = update_transaction(s, u.organization_id, u.user_id, tx_id, body.to_changes())
    return tx_out(t)


@router.delete("/{tx_id}")
def remove_transaction(tx_id: str, s: Session = Depends(db), u: Principal = Depends(require_org)):
    delete_transaction(s, u.organization_id, u.user_id, tx_id)
    return {"ok": True}


@router.get("/{tx_id}/invoice")
def transaction_invoice(tx_id: str, s: Session = Depends(db), u: Principal = Depends(require_org)):
    t = get_owned_transaction(s, u.organization_id, tx_id)
    pdf = render_invoice(t, org_display_name(u))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice_filename(t)}"'},
    )
