"""Invoice endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from carebill.backend.src.api.deps import (
    ensure_in_scope,
    find_visible,
    require_editor,
    store_errors,
    with_default_clinic,
)
from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.invoice import Invoice, InvoiceCreate, InvoiceUpdate
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.pdf_generation import render_invoice_pdf
from carebill.backend.src.services.visibility import filter_visible

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=list[Invoice])
def list_invoices(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[Invoice]:
    return filter_visible(context.store.invoices, principal)


@router.post("", response_model=Invoice, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Invoice:
    """Create an invoice; the next ``INV-<year>-<NNN>`` number is assigned when omitted."""

    payload = with_default_clinic(payload, principal)
    ensure_in_scope(payload, principal)
    with store_errors():
        invoice = await context.store.add_invoice(payload)
    LOGGER.info("invoice_created", invoice_id=invoice.id, invoice_number=invoice.invoice_number)
    return invoice


@router.patch("/{invoice_id}", response_model=Invoice)
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Invoice:
    find_visible(context.store.invoices, invoice_id, principal)
    with store_errors():
        return await context.store.update_invoice(invoice_id, payload)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: str,
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> Response:
    invoice = find_visible(context.store.invoices, invoice_id, principal)
    clinic = next((c for c in context.store.clinics if c.id == invoice.clinic_id), None)
    pdf = await run_in_threadpool(render_invoice_pdf, invoice, clinic)
    return Response(
        content=pdf.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf.filename}"'},
    )
