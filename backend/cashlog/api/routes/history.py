from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashlog.api.deps import db, require_org
from cashlog.core.security import Principal
from cashlog.db.uow import unit_of_work
from cashlog.schemas.report import MonthHistoryOut, RebuildOut, YearHistoryOut
from cashlog.services import dashboard
from cashlog.services.audit import log_event
from cashlog.services.periods import rebuild_periods

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=list[YearHistoryOut])
def list_history(
    year: int | None = Query(None),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    out = []
    for entry in dashboard.period_history(s, u.organization_id, year):
        y = entry["year"]
        out.append(
            YearHistoryOut(
                id=y.id,
                year=y.year,
                total_income=float(y.total_income),
                total_expense=float(y.total_expense),
                months=[MonthHistoryOut.model_validate(m) for m in entry["months"]],
            )
        )
    return out


@router.post("/rebuild", response_model=RebuildOut)
def rebuild_history(s: Session = Depends(db), u: Principal = Depends(require_org)):
    with unit_of_work(s):
        n = rebuild_periods(s, u.organization_id)
        log_event(
            s,
            organization_id=u.organization_id,
            user_id=u.user_id,
            action="history.rebuild",
            entity_type="history",
            details={"months": n},
        )
    return RebuildOut(months=n)
