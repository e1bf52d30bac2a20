"""Billing entry endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from carebill.backend.src.api.deps import (
    ensure_in_scope,
    find_visible,
    require_editor,
    store_errors,
    with_default_clinic,
)
from carebill.backend.src.core.events import MonthSelection
from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.billing_entry import (
    BillingEntry,
    BillingEntryCreate,
    BillingEntryUpdate,
)
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.dates import in_month, parse_month_label
from carebill.backend.src.services.exports import billing_entries_to_csv
from carebill.backend.src.services.visibility import NO_ACCESS, filter_visible, scope_for

router = APIRouter(prefix="/billing", tags=["billing"])


def _month_or_selection(context: AppContext, month: str | None) -> str | None:
    label = month
    if label is None and context.month_selection.latest is not None:
        label = context.month_selection.latest.label
    if label is not None:
        try:
            parse_month_label(label)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    return label


def _visible_entries(
    context: AppContext, principal: UserProfile, month: str | None
) -> list[BillingEntry]:
    entries = filter_visible(context.store.billing_entries, principal)
    label = _month_or_selection(context, month)
    if label is None:
        return entries
    return [entry for entry in entries if in_month(entry.date, label)]


@router.get("/entries", response_model=list[BillingEntry])
def list_entries(
    month: str | None = Query(default=None, description="e.g. 'January 2025'"),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[BillingEntry]:
    """Return visible entries for ``month`` or the last selected month."""

    return _visible_entries(context, principal, month)


@router.post("/entries", response_model=BillingEntry, status_code=status.HTTP_201_CREATED)
async def create_entry(
    payload: BillingEntryCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> BillingEntry:
    if principal.role != "provider":
        payload = with_default_clinic(payload, principal)
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_billing_entry(payload)


@router.patch("/entries/{entry_id}", response_model=BillingEntry)
async def update_entry(
    entry_id: str,
    payload: BillingEntryUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> BillingEntry:
    find_visible(context.store.billing_entries, entry_id, principal)
    with store_errors():
        return await context.store.update_billing_entry(entry_id, payload)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.billing_entries, entry_id, principal)
    with store_errors():
        await context.store.delete_billing_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/refresh", response_model=list[BillingEntry])
async def refresh_entries(
    month: str | None = Query(default=None),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[BillingEntry]:
    """Re-query entries within the principal's scope and replace the cache."""

    scope = scope_for(principal)
    if scope == NO_ACCESS:
        return []
    label = _month_or_selection(context, month)
    with store_errors():
        if scope.unrestricted:
            entries = await context.store.refresh_billing_entries(month=label)
        elif principal.role == "provider":
            entries = await context.store.refresh_billing_entries(
                provider_id=scope.provider_id, month=label
            )
        else:
            entries = await context.store.refresh_billing_entries(
                clinic_id=scope.clinic_id, month=label
            )
    return filter_visible(entries, principal)


@router.post("/selection", response_model=MonthSelection)
async def select_month(
    selection: MonthSelection,
    _: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> MonthSelection:
    """Publish the month picked in the sidebar to every subscriber."""

    await context.month_selection.publish(selection)
    return selection


@router.get("/export.csv")
def export_entries(
    month: str | None = Query(default=None),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> Response:
    entries = _visible_entries(context, principal, month)
    return Response(
        content=billing_entries_to_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="billing_entries.csv"'},
    )
