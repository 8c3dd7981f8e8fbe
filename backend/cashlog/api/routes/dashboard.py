from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date

from cashlog.api.deps import db, require_org
from cashlog.core.errors import ValidationError
from cashlog.core.security import Principal
from cashlog.schemas.report import CategoryStatsOut, DailyPointOut, ProfitLossOut, StatsOut
from cashlog.services import dashboard
from cashlog.utils.timezone import today_local

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=StatsOut)
def stats(
    start: date | None = Query(None, alias="from"),
    end: date | None = Query(None, alias="to"),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    return dashboard.stats(s, u.organization_id, start, end)


@router.get("/category-stats", response_model=CategoryStatsOut)
def category_stats(
    start: date | None = Query(None, alias="from"),
    end: date | None = Query(None, alias="to"),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    return dashboard.category_stats(s, u.organization_id, start, end)


@router.get("/daily-history", response_model=list[DailyPointOut])
def daily_history(
    days: int = Query(90, ge=1, le=366),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    return dashboard.daily_history(s, u.organization_id, today_local(), days)


@router.get("/profit-loss", response_model=ProfitLossOut)
def profit_loss(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    if start > end:
        raise ValidationError({"startDate": ["start date must not be after end date"]})
    return dashboard.profit_loss(s, u.organization_id, start, end)
