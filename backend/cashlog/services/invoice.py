from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from cashlog.models.transaction import Transaction
from cashlog.utils.money import format_rupiah


def invoice_title(tx_type: str) -> str:
    # income is billed to a customer; expense is a receipt from a supplier
    return "INVOICE" if tx_type == "income" else "RECEIPT"


def invoice_filename(t: Transaction) -> str:
    return f"transaction-{t.id}.pdf"


def render_invoice(t: Transaction, org_name: str) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title=f"{invoice_title(t.type)} {t.id}",
    )
    styles = getSampleStyleSheet()
    center = ParagraphStyle("center", parent=styles["Title"], alignment=TA_CENTER)
    right = ParagraphStyle("right", parent=styles["Normal"], alignment=TA_RIGHT)

    category = t.category.name if t.category is not None else "-"
    party = t.related_party.name if t.related_party is not None else "-"

    story = [
        Paragraph(escape(org_name), styles["Heading3"]),
        Paragraph(invoice_title(t.type), center),
        Spacer(1, 4 * mm),
        Paragraph(f"Date: {t.date.strftime('%d %B %Y')}", right),
        Paragraph(f"No: {t.id}", styles["Normal"]),
        Paragraph(f"Description: {escape(t.description)}", styles["Normal"]),
        Paragraph(f"Related party: {escape(party)}", styles["Normal"]),
        Paragraph(f"Category: {escape(category)}", styles["Normal"]),
        Spacer(1, 8 * mm),
    ]

    data = [["Item", "Quantity", "Price", "Total"]]
    for it in t.items:
        data.append([it.name, str(it.quantity), format_rupiah(it.item_price), format_rupiah(it.total_price)])
    data.append(["", "", "Total", format_rupiah(t.amount_total)])

    width = doc.width
    table = Table(data, colWidths=[width * 0.4, width * 0.2, width * 0.2, width * 0.2], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F1F5F9")),
                ("GRID", (0, 0), (-1, -2), 0.5, colors.HexColor("#94a3b8")),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (2, -1), (-1, -1), 1, colors.black),
            ]
        )
    )
    story.append(table)

    doc.build(story)
    return buf.getvalue()
