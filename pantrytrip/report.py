"""Trip summary PDF using ReportLab."""

from __future__ import annotations

from pathlib import Path
from xml.sax.saxutils import escape

from .models import ReconciliationSummary, RestockResult


def _register_font(font_path: str | None) -> str:
    """Register a TrueType font with ReportLab and return its name.

    Without a path the built-in Helvetica is used.
    """
    if not font_path:
        return "Helvetica"

    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.ttfonts import TTFont

    if not Path(font_path).exists():
        raise FileNotFoundError(f"font not found: {font_path}")
    font_name = "TripFont"
    pdfmetrics.registerFont(TTFont(font_name, font_path))
    return font_name


def _money(value: float | None) -> str:
    return "-" if value is None else f"${value:,.2f}"


def generate_trip_pdf(
    summary: ReconciliationSummary,
    restock_result: RestockResult | None,
    output_path: str | Path,
    font_path: str | None = None,
) -> Path:
    """Generate a one-page trip report.

    Args:
        summary: Budget reconciliation for the trip.
        restock_result: Pantry updates, or None to leave that section out.
        output_path: Where to save the PDF file.
        font_path: Optional TTF file for names outside Latin-1.

    Returns:
        Path to the generated PDF file.

    Raises:
        ImportError: If reportlab is not installed.
        FileNotFoundError: If ``font_path`` does not exist.
    """
    try:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.lib.units import mm
        from reportlab.platypus import (
            Paragraph,
            SimpleDocTemplate,
            Spacer,
            Table,
            TableStyle,
        )
    except ImportError:
        raise ImportError(
            "reportlab is required: pip install 'pantrytrip[pdf]'"
        )

    font_name = _register_font(font_path)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "TripTitle",
        parent=styles["Title"],
        fontName=font_name,
        fontSize=18,
        leading=24,
    )
    heading_style = ParagraphStyle(
        "TripHeading",
        parent=styles["Heading2"],
        fontName=font_name,
        fontSize=13,
        leading=18,
        spaceBefore=5 * mm,
        spaceAfter=3 * mm,
    )
    body_style = ParagraphStyle(
        "TripBody",
        parent=styles["Normal"],
        fontName=font_name,
        fontSize=9,
        leading=13,
    )

    def table_style(header: str, stripe: str) -> TableStyle:
        return TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(header)),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, -1), font_name),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor(stripe)]),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("LEFTPADDING", (0, 0), (-1, -1), 4),
            ("RIGHTPADDING", (0, 0), (-1, -1), 4),
        ])

    elements: list = []
    elements.append(Paragraph("Shopping trip summary", title_style))

    # Budget
    if summary.saved_money:
        verdict = f"Saved {_money(summary.difference)} ({summary.percent_saved:.1f}%)"
    elif summary.difference < 0:
        verdict = f"Over budget by {_money(summary.overspend)}"
    else:
        verdict = "Spent exactly the budget"
    budget_rows = [
        ["", "Amount"],
        ["Budget", _money(summary.budget)],
        ["Spent", _money(summary.actual_total)],
        ["Result", verdict],
        ["Items planned / bought", f"{summary.planned_items_count} / {summary.actual_items_count}"],
    ]
    t = Table(budget_rows, colWidths=[60 * mm, 90 * mm])
    t.setStyle(table_style("#4A90D9", "#F5F5F5"))
    elements.append(t)

    # Unplanned purchases
    if summary.unplanned_items:
        elements.append(Paragraph("Unplanned purchases", heading_style))
        rows = [["Item", "Qty", "Total"]]
        for item in summary.unplanned_items:
            rows.append([item.name, f"{item.quantity:g}", _money(item.total_price)])
        rows.append(["Total", "", _money(summary.unplanned_total)])
        t = Table(rows, colWidths=[90 * mm, 20 * mm, 40 * mm])
        t.setStyle(table_style("#E67E22", "#FFF3E0"))
        elements.append(t)

    # Planned but not bought
    if summary.missed_items:
        elements.append(Paragraph("Not bought", heading_style))
        for item in summary.missed_items:
            elements.append(Paragraph(f"- {escape(item.name)}", body_style))

    if restock_result is not None:
        elements.append(Paragraph("Pantry updates", heading_style))
        rows = [["Receipt item", "Pantry update"]]
        for r in restock_result.restocked_items:
            rows.append([r.receipt_item_name, "restocked"])
        for f in restock_result.fuzzy_matches:
            rows.append([f.receipt_item_name, f"maybe {f.pantry_item_name} ({f.similarity}%)"])
        for n in restock_result.items_to_add:
            rows.append([n.name, "new item"])
        for c in restock_result.failed_restocks:
            rows.append([c.subject, f"failed: {c.error}"])
        if len(rows) == 1:
            elements.append(Paragraph("No pantry changes.", body_style))
        else:
            t = Table(rows, colWidths=[70 * mm, 80 * mm])
            t.setStyle(table_style("#27AE60", "#EAF7EE"))
            elements.append(t)

    elements.append(Spacer(1, 6 * mm))
    doc.build(elements)
    return output_path
