from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from io import BytesIO
from sqlalchemy.orm import Session
from datetime import date

from cashlog.api.deps import db, require_org, org_display_name
from cashlog.core.errors import ValidationError
from cashlog.core.security import Principal
from cashlog.schemas.report import ItemRowOut, ReportRowOut, TypeSummaryOut
from cashlog.services.exports import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE, export_filename, render_export
from cashlog.services.reports import ItemRow, ReportRow, TypeSummary, build_report

router = APIRouter(prefix="/api/reports", tags=["reports"])

EXPORT_FORMATS = ("pdf", "excel")


def _serialize(data):
    if isinstance(data, TypeSummary):
        return TypeSummaryOut.model_validate(data).model_dump(by_alias=True)
    if isinstance(data, dict):
        return {k: TypeSummaryOut.model_validate(v).model_dump(by_alias=True) for k, v in data.items()}
    out = []
    for r in data:
        if isinstance(r, ItemRow):
            out.append(ItemRowOut.model_validate(r).model_dump(by_alias=True))
        elif isinstance(r, ReportRow):
            out.append(ReportRowOut.model_validate(r).model_dump(by_alias=True))
    return out


@router.get("")
def report(
    type: str = Query(...),
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    transaction_type: str = Query("all", alias="transactionType"),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    data = build_report(s, type, u.organization_id, start, end, transaction_type)
    return _serialize(data)


@router.get("/export")
def export_report(
    type: str = Query(...),
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    format: str = Query("pdf"),
    transaction_type: str = Query("all", alias="transactionType"),
    s: Session = Depends(db),
    u: Principal = Depends(require_org),
):
    if format not in EXPORT_FORMATS:
        raise ValidationError({"format": ["format must be pdf or excel"]})

    data = build_report(s, type, u.organization_id, start, end, transaction_type)
    content = render_export(type, data, format, start, end, org_display_name(u), transaction_type)

    filename = export_filename(type, transaction_type, start, end, format)
    return StreamingResponse(
        BytesIO(content),
        media_type=PDF_MEDIA_TYPE if format == "pdf" else XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
