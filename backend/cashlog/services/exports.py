from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from xml.sax.saxutils import escape

import xlsxwriter
from xlsxwriter.utility import xl_col_to_name
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from cashlog.services.reports import ReportRow, TypeSummary
from cashlog.utils.money import ZERO, format_rupiah, to_dec

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

TITLES = {
    "monthly": "Monthly Report",
    "yearly": "Yearly Report",
    "category": "Category Report",
    "related-party": "Related Party Report",
    "items": "Item Report",
    "summary": "Summary Report",
}

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class ReportTable:
    title: str
    headers: list[str]
    rows: list[list]
    # column index -> "money" | "int"; everything else is text
    kinds: dict[int, str]
    totals: list | None


def report_title(kind: str, transaction_type: str = "all") -> str:
    t = TITLES.get(kind, "Report")
    if transaction_type in ("income", "expense"):
        t = f"{t} ({transaction_type.capitalize()})"
    return t


def _month_label(r: ReportRow) -> str:
    if r.year is None or r.month is None:
        return r.label
    return f"{MONTH_NAMES[r.month - 1]} {r.year}"


def _sum_cols(rows: list[list], kinds: dict[int, str], width: int) -> list:
    out: list = ["Total"] + [""] * (width - 1)
    for c, k in kinds.items():
        if k == "money":
            out[c] = sum((to_dec(r[c]) for r in rows), ZERO)
        elif k == "int":
            out[c] = sum(int(r[c]) for r in rows)
    return out


def build_table(kind: str, data, transaction_type: str = "all") -> ReportTable:
    """Flatten report output into one table; totals are summed from the same rows."""
    title = report_title(kind, transaction_type)

    if kind in ("monthly", "yearly"):
        headers = ["Period" if kind == "monthly" else "Year", "Income", "Expense", "Net"]
        rows = [
            [_month_label(r) if kind == "monthly" else r.label, r.income, r.expense, r.net]
            for r in data
        ]
        kinds = {1: "money", 2: "money", 3: "money"}
    elif kind in ("category", "related-party"):
        headers = ["Category" if kind == "category" else "Related Party", "Type", "Income", "Expense", "Net"]
        rows = [[r.label, (r.type or "").capitalize(), r.income, r.expense, r.net] for r in data]
        kinds = {2: "money", 3: "money", 4: "money"}
    elif kind == "items":
        headers = ["Item", "Type", "Quantity", "Total Amount"]
        rows = [[r.label, r.type.capitalize(), r.quantity, r.total_amount] for r in data]
        kinds = {2: "int", 3: "money"}
    elif kind == "summary":
        summaries = [data] if isinstance(data, TypeSummary) else list(data.values())
        headers = ["Type", "Group", "Name", "Quantity", "Total"]
        rows = []
        for sm in summaries:
            tname = sm.type.capitalize()
            rows.append([tname, "All", f"{sm.transaction_count} transactions", "", sm.total])
            for n in sm.categories:
                rows.append([tname, "Category", n.name, "", n.total])
            for n in sm.related_parties:
                rows.append([tname, "Related Party", n.name, "", n.total])
            for n in sm.items:
                rows.append([tname, "Item", n.name, n.quantity or 0, n.total])
        return ReportTable(title=title, headers=headers, rows=rows, kinds={3: "int", 4: "money"}, totals=None)
    else:
        raise ValueError(f"unknown report kind: {kind!r}")

    totals = _sum_cols(rows, kinds, len(headers)) if rows else None
    return ReportTable(title=title, headers=headers, rows=rows, kinds=kinds, totals=totals)


def safe_part(v: str) -> str:
    s = (v or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return (s[:40] or "unknown")


def export_filename(kind: str, transaction_type: str, start: date, end: date, fmt: str) -> str:
    ext = "pdf" if fmt == "pdf" else "xlsx"
    return f"{safe_part(kind)}-{safe_part(transaction_type)}-report_{start}_to_{end}.{ext}"


def render_excel(table: ReportTable, start: date, end: date, org_name: str) -> bytes:
    buf = BytesIO()
    wb = xlsxwriter.Workbook(buf, {"in_memory": True})
    base_font = "Calibri"

    title_fmt = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})
    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})
    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
        }
    )
    money = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    int0 = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "0", "border": 1, "align": "right"})
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    total_label = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1, "align": "left"}
    )
    total_money = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "num_format": "#,##0.00",
            "align": "right",
        }
    )
    total_int = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1, "num_format": "0"}
    )

    # sheet names are capped at 31 chars
    ws = wb.add_worksheet(table.title[:31])
    ws.set_column(0, 0, 28)
    ws.set_column(1, len(table.headers) - 1, 18)

    ws.write_string(0, 0, org_name or "", title_fmt)
    ws.write_string(1, 0, table.title, meta_label)
    ws.write(2, 0, "Range", meta_label)
    ws.write(2, 1, f"{start} to {end}", subtle)
    ws.write(2, 3, "Generated", meta_label)
    ws.write(2, 4, datetime.now().strftime("%Y-%m-%d %H:%M"), subtle)

    head_row = 4
    ws.set_row(head_row, 18)
    for c, h in enumerate(table.headers):
        ws.write_string(head_row, c, h, header)
    ws.freeze_panes(head_row + 1, 1)

    r = head_row + 1
    for row in table.rows:
        for c, v in enumerate(row):
            k = table.kinds.get(c)
            if k == "money":
                ws.write_number(r, c, float(to_dec(v)), money)
            elif k == "int" and v != "":
                ws.write_number(r, c, int(v), int0)
            else:
                # text stays text even when it starts with '='
                ws.write_string(r, c, str(v), text_cell)
        r += 1

    last_data_row = r - 1
    if last_data_row > head_row:
        ws.autofilter(head_row, 0, last_data_row, len(table.headers) - 1)

    if table.totals is not None and last_data_row > head_row:
        first_excel = head_row + 2
        last_excel = last_data_row + 1
        ws.write(r, 0, "Total", total_label)
        for c in range(1, len(table.headers)):
            k = table.kinds.get(c)
            col = xl_col_to_name(c)
            if k == "money":
                ws.write_formula(
                    r, c, f"=SUM({col}{first_excel}:{col}{last_excel})", total_money, float(to_dec(table.totals[c]))
                )
            elif k == "int":
                ws.write_formula(r, c, f"=SUM({col}{first_excel}:{col}{last_excel})", total_int, int(table.totals[c]))
            else:
                ws.write_blank(r, c, None, total_label)
    elif last_data_row == head_row:
        ws.write(head_row + 1, 0, "No transactions in the selected range.", subtle)

    ws.set_landscape()
    ws.fit_to_pages(1, 0)
    wb.close()
    return buf.getvalue()


def _pdf_cell(v, kind: str | None) -> str:
    if kind == "money":
        return format_rupiah(v)
    if kind == "int":
        return "" if v == "" else str(int(v))
    return str(v)


def render_pdf(table: ReportTable, start: date, end: date, org_name: str) -> bytes:
    buf = BytesIO()
    wide = len(table.headers) > 4
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4) if wide else A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=table.title,
    )
    styles = getSampleStyleSheet()

    story = [
        Paragraph(escape(org_name), styles["Title"]),
        Paragraph(escape(table.title), styles["Heading2"]),
        Paragraph(f"Period: {start.strftime('%d %B %Y')} - {end.strftime('%d %B %Y')}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    data = [list(table.headers)]
    for row in table.rows:
        data.append([_pdf_cell(v, table.kinds.get(c)) for c, v in enumerate(row)])
    if table.totals is not None:
        data.append([_pdf_cell(v, table.kinds.get(c)) if c else v for c, v in enumerate(table.totals)])
    if not table.rows:
        data.append(["No transactions in the selected range."] + [""] * (len(table.headers) - 1))

    t = Table(data, repeatRows=1)
    style = [
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F1F5F9")),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#94a3b8")),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for c in table.kinds:
        style.append(("ALIGN", (c, 1), (c, -1), "RIGHT"))
    if table.totals is not None:
        style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
        style.append(("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#F8FAFC")))
    if not table.rows:
        style.append(("SPAN", (0, 1), (-1, 1)))
    t.setStyle(TableStyle(style))
    story.append(t)

    story.append(Spacer(1, 4 * mm))
    story.append(Paragraph(f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles["Italic"]))

    doc.build(story)
    return buf.getvalue()


def render_export(kind: str, data, fmt: str, start: date, end: date, org_name: str, transaction_type: str = "all") -> bytes:
    table = build_table(kind, data, transaction_type)
    if fmt == "pdf":
        return render_pdf(table, start, end, org_name)
    return render_excel(table, start, end, org_name)
