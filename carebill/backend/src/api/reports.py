"""Reporting endpoints over the cached collections."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.calculations import (
    revenue_by_clinic,
    revenue_by_provider,
    revenue_by_status,
)
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.dashboard import compute_dashboard_stats
from carebill.backend.src.services.dates import in_month, parse_month_label
from carebill.backend.src.services.visibility import filter_visible, scope_for

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard")
def dashboard(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> dict[str, Any]:
    """Return headline statistics for the caller's scope."""

    return compute_dashboard_stats(context.store, scope_for(principal))


@router.get("/revenue")
def revenue(
    month: str | None = Query(default=None),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> dict[str, Any]:
    """Return revenue rolled up by status, clinic and provider."""

    entries = filter_visible(context.store.billing_entries, principal)
    if month:
        try:
            parse_month_label(month)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        entries = [entry for entry in entries if in_month(entry.date, month)]
    scope = scope_for(principal)
    clinics = [
        clinic
        for clinic in context.store.clinics
        if scope.unrestricted or clinic.id == scope.clinic_id
    ]
    providers = filter_visible(context.store.providers, principal)
    return {
        "by_status": revenue_by_status(entries),
        "by_clinic": revenue_by_clinic(entries, clinics),
        "by_provider": revenue_by_provider(entries, providers),
    }
