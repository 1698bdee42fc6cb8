# finance_tracker/export.py
# CSV and PDF export of transactions

import csv
import io
from datetime import date, datetime
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .sanitize import sanitize_filename

CSV_HEADERS = ["Date", "Description", "Category", "Type", "Amount"]

# PDF layout (points)
MARGIN = 40
ROW_HEIGHT = 16
COLUMNS = [  # (header, x offset, max chars)
    ("Date", 0, 12),
    ("Description", 70, 40),
    ("Category", 290, 20),
    ("Type", 400, 10),
    ("Amount", 455, 18),
]
ORANGE = colors.HexColor("#F97316")
STRIPE = colors.HexColor("#FEF3C7")
GREEN = colors.HexColor("#22C55E")
RED = colors.HexColor("#EF4444")


def format_currency(amount, symbol: str = "₱") -> str:
    value = float(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def _category(t) -> str:
    return t.category.name if getattr(t, "category", None) else "Uncategorized"


def _type_label(t) -> str:
    return t.type.capitalize()


def export_filename(fmt: str, filters: Optional[str] = None, today: Optional[date] = None) -> str:
    """transactions[-filters]-YYYY-MM-DD.<fmt>"""
    today = today or date.today()
    suffix = f"-{sanitize_filename(filters)}" if filters and sanitize_filename(filters) else ""
    return f"transactions{suffix}-{today.isoformat()}.{fmt}"


# ===== CSV =====

def export_to_csv(transactions) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(CSV_HEADERS)
    for t in transactions:
        writer.writerow([
            t.date.isoformat(),
            t.description or "",
            _category(t),
            _type_label(t),
            f"{float(t.amount):.2f}",
        ])
    return output.getvalue()


# ===== PDF =====

def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _paginate(rows: List[list], first_page: int, per_page: int) -> List[List[list]]:
    pages = [rows[:first_page]]
    rest = rows[first_page:]
    while rest:
        pages.append(rest[:per_page])
        rest = rest[per_page:]
    return pages


def _draw_table_header(p: canvas.Canvas, y: float, width: float):
    p.setFillColor(ORANGE)
    p.rect(MARGIN, y - 4, width - 2 * MARGIN, ROW_HEIGHT, stroke=0, fill=1)
    p.setFillColor(colors.white)
    p.setFont("Helvetica-Bold", 10)
    for header, x, _ in COLUMNS:
        p.drawString(MARGIN + 4 + x, y, header)


def export_to_pdf(transactions, generated_at: Optional[datetime] = None) -> bytes:
    """Single report document: title block, totals, then a striped table with page numbers."""
    generated_at = generated_at or datetime.now()
    buffer = io.BytesIO()
    width, height = A4
    p = canvas.Canvas(buffer, pagesize=A4)
    p.setTitle("Transaction Report")

    total_income = sum(float(t.amount) for t in transactions if t.type == "income")
    total_expense = sum(float(t.amount) for t in transactions if t.type == "expense")
    net = total_income - total_expense

    rows = [
        [
            t.date.isoformat(),
            t.description or "-",
            _category(t),
            _type_label(t),
            format_currency(t.amount, "PHP "),
        ]
        for t in transactions
    ]

    table_top_first = height - 250
    table_top = height - MARGIN - 20
    bottom = MARGIN + 30
    pages = _paginate(
        rows,
        int((table_top_first - bottom) // ROW_HEIGHT),
        int((table_top - bottom) // ROW_HEIGHT),
    )
    page_count = len(pages)

    for page_number, page_rows in enumerate(pages, start=1):
        if page_number == 1:
            # Header band
            p.setFillColor(ORANGE)
            p.rect(0, height - 100, width, 100, stroke=0, fill=1)
            p.setFillColor(colors.white)
            p.setFont("Helvetica-Bold", 22)
            p.drawString(MARGIN, height - 45, "PHPinancia")
            p.setFont("Helvetica", 16)
            p.drawString(MARGIN, height - 70, "Transaction Report")

            p.setFillColor(colors.black)
            p.setFont("Helvetica", 10)
            p.drawString(MARGIN, height - 125, f"Generated on: {generated_at.strftime('%B %d, %Y')}")
            p.drawString(MARGIN, height - 140, f"Total Transactions: {len(transactions)}")

            # Summary
            p.setFont("Helvetica-Bold", 10)
            summary = [
                ("Total Income:", total_income, GREEN),
                ("Total Expense:", total_expense, RED),
                ("Net Amount:", net, GREEN if net >= 0 else RED),
            ]
            y = height - 170
            for label, value, color in summary:
                p.setFillColor(colors.HexColor("#475569"))
                p.drawString(MARGIN, y, label)
                p.setFillColor(color)
                p.drawString(MARGIN + 100, y, format_currency(value, "PHP "))
                y -= 18
            y = table_top_first
        else:
            y = table_top

        _draw_table_header(p, y, width)
        y -= ROW_HEIGHT
        p.setFont("Helvetica", 9)
        for index, row in enumerate(page_rows):
            if index % 2 == 1:
                p.setFillColor(STRIPE)
                p.rect(MARGIN, y - 4, width - 2 * MARGIN, ROW_HEIGHT, stroke=0, fill=1)
            for (header, x, limit), value in zip(COLUMNS, row):
                if header in ("Type", "Amount"):
                    p.setFillColor(GREEN if row[3] == "Income" else RED)
                else:
                    p.setFillColor(colors.HexColor("#334155"))
                p.drawString(MARGIN + 4 + x, y, _truncate(str(value), limit))
            y -= ROW_HEIGHT

        p.setFillColor(colors.black)
        p.setFont("Helvetica", 8)
        p.drawCentredString(width / 2, MARGIN - 10, f"Page {page_number} of {page_count}")
        p.showPage()

    p.save()
    buffer.seek(0)
    return buffer.getvalue()
