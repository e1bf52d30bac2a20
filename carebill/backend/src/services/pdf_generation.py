"""Utilities for generating invoice PDFs."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from time import perf_counter

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from carebill.backend.src.core.metrics import pdf_generation_seconds
from carebill.backend.src.schemas.clinic import Clinic
from carebill.backend.src.schemas.invoice import Invoice


@dataclass(frozen=True, slots=True)
class InvoicePdf:
    """A rendered invoice document."""

    filename: str
    content: bytes


def _build_filename(invoice_number: str) -> str:
    safe_number = invoice_number.replace(" ", "_") or "draft"
    return f"invoice_{safe_number}.pdf"


def render_invoice_pdf(invoice: Invoice, clinic: Clinic | None = None) -> InvoicePdf:
    """Render a clinic invoice with its line items and computed totals."""

    filename = _build_filename(invoice.invoice_number)
    start = perf_counter()
    buffer = BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=letter)
    width, height = letter

    margin = 50
    header_height = 110
    primary_color = HexColor("#0F172A")
    accent_color = HexColor("#2563EB")
    muted_text = HexColor("#64748B")
    light_panel = HexColor("#F8FAFC")
    table_header_color = HexColor("#EFF6FF")
    border_color = HexColor("#E2E8F0")
    totals = invoice.totals

    columns = [margin + 18, margin + 330, margin + 410, width - margin - 10]

    def draw_brand_header() -> float:
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.rect(0, height - header_height, width, header_height, fill=1, stroke=0)

        pdf_canvas.setFont("Helvetica-Bold", 20)
        pdf_canvas.setFillColor(HexColor("#FFFFFF"))
        pdf_canvas.drawString(margin, height - 58, "INVOICE")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(HexColor("#CBD5F5"))
        pdf_canvas.drawString(margin, height - 78, f"Invoice #: {invoice.invoice_number}")

        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.setFillColor(HexColor("#E2E8F0"))
        pdf_canvas.drawRightString(width - margin, height - 58, f"Date: {invoice.date}")
        pdf_canvas.drawRightString(width - margin, height - 72, f"Due Date: {invoice.due_date}")
        pdf_canvas.drawRightString(width - margin, height - 86, f"Status: {invoice.status.title()}")

        pdf_canvas.setFillColor(primary_color)
        return height - header_height - 30

    def draw_bill_to(top: float) -> float:
        card_height = 80
        card_bottom = top - card_height
        pdf_canvas.setFillColor(light_panel)
        pdf_canvas.roundRect(margin, card_bottom, width - 2 * margin, card_height, 12, fill=1, stroke=0)

        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawString(margin + 24, top - 26, "Bill To")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(muted_text)
        if clinic is not None:
            pdf_canvas.drawString(margin + 24, top - 42, clinic.name)
            pdf_canvas.drawString(margin + 24, top - 56, clinic.address)
            pdf_canvas.drawString(margin + 24, top - 70, f"Phone: {clinic.phone}")
        else:
            pdf_canvas.drawString(margin + 24, top - 42, invoice.clinic_id)

        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.drawRightString(width - margin - 24, top - 26, "Total Due")
        pdf_canvas.setFont("Helvetica-Bold", 16)
        pdf_canvas.setFillColor(accent_color)
        pdf_canvas.drawRightString(width - margin - 24, top - 48, f"${totals.total:.2f}")

        pdf_canvas.setFillColor(primary_color)
        return card_bottom - 28

    def draw_table_header(top: float) -> float:
        row_height = 26
        pdf_canvas.setFillColor(table_header_color)
        pdf_canvas.roundRect(margin, top - row_height, width - 2 * margin, row_height, 8, fill=1, stroke=0)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 10)
        pdf_canvas.drawString(columns[0], top - 16, "Description")
        pdf_canvas.drawRightString(columns[1], top - 16, "Qty")
        pdf_canvas.drawRightString(columns[2], top - 16, "Rate")
        pdf_canvas.drawRightString(columns[3], top - 16, "Amount")
        pdf_canvas.setFont("Helvetica", 10)
        return top - row_height - 18

    y_position = draw_brand_header()
    y_position = draw_bill_to(y_position)
    y_position = draw_table_header(y_position)

    row_height = 22
    for idx, item in enumerate(invoice.items):
        if y_position < 140:
            pdf_canvas.showPage()
            y_position = draw_brand_header()
            y_position = draw_table_header(y_position)

        if idx % 2 == 0:
            pdf_canvas.setFillColor(light_panel)
            pdf_canvas.roundRect(
                margin,
                y_position - row_height + 6,
                width - 2 * margin,
                row_height - 4,
                6,
                fill=1,
                stroke=0,
            )
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.drawString(columns[0], y_position - 10, item.description)
        pdf_canvas.drawRightString(columns[1], y_position - 10, f"{item.quantity:g}")
        pdf_canvas.drawRightString(columns[2], y_position - 10, f"${item.rate:.2f}")
        pdf_canvas.drawRightString(columns[3], y_position - 10, f"${item.amount:.2f}")
        y_position -= row_height

    pdf_canvas.setStrokeColor(border_color)
    pdf_canvas.line(margin, y_position - 6, width - margin, y_position - 6)

    summary = [("Subtotal", f"${totals.subtotal:.2f}")]
    if totals.tax_amount > 0:
        summary.append((f"Tax ({invoice.tax_rate:g}%)", f"${totals.tax_amount:.2f}"))
    if totals.discount_amount > 0:
        summary.append((f"Discount ({invoice.discount_rate:g}%)", f"-${totals.discount_amount:.2f}"))

    y_position -= 26
    pdf_canvas.setFont("Helvetica", 10)
    pdf_canvas.setFillColor(muted_text)
    for label, value in summary:
        pdf_canvas.drawRightString(columns[2], y_position, label)
        pdf_canvas.drawRightString(columns[3], y_position, value)
        y_position -= 16

    pdf_canvas.setFont("Helvetica-Bold", 11)
    pdf_canvas.drawRightString(columns[2], y_position - 4, "Total")
    pdf_canvas.setFont("Helvetica-Bold", 14)
    pdf_canvas.setFillColor(accent_color)
    pdf_canvas.drawRightString(columns[3], y_position - 4, f"${totals.total:.2f}")

    if invoice.notes:
        y_position -= 36
        pdf_canvas.setFont("Helvetica-Bold", 10)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.drawString(margin, y_position, "Notes:")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawString(margin, y_position - 14, invoice.notes)

    pdf_canvas.save()

    buffer.seek(0)
    pdf_bytes = buffer.read()
    pdf_generation_seconds.observe(perf_counter() - start)
    return InvoicePdf(filename=filename, content=pdf_bytes)


__all__ = ["InvoicePdf", "render_invoice_pdf"]
