"""Endpoints for patients, claim issues, timecards and accounts receivable."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from carebill.backend.src.api.deps import (
    ensure_in_scope,
    find_visible,
    require_editor,
    store_errors,
)
from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.claim_issue import (
    ClaimIssue,
    ClaimIssueCreate,
    ClaimIssueUpdate,
)
from carebill.backend.src.schemas.patient import Patient, PatientCreate, PatientUpdate
from carebill.backend.src.schemas.receivable import (
    AccountsReceivable,
    AccountsReceivableCreate,
    AccountsReceivableUpdate,
)
from carebill.backend.src.schemas.timecard import (
    TimecardEntry,
    TimecardEntryCreate,
    TimecardEntryUpdate,
)
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.dates import parse_month_label
from carebill.backend.src.services.exports import accounts_receivable_to_csv
from carebill.backend.src.services.visibility import NO_ACCESS, filter_visible, scope_for

router = APIRouter(tags=["records"])


# Patients


@router.get("/patients", response_model=list[Patient])
def list_patients(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[Patient]:
    return filter_visible(context.store.patients, principal)


@router.post("/patients", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Patient:
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_patient(payload)


@router.patch("/patients/{patient_id}", response_model=Patient)
async def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Patient:
    find_visible(context.store.patients, patient_id, principal)
    with store_errors():
        return await context.store.update_patient(patient_id, payload)


@router.delete("/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.patients, patient_id, principal)
    with store_errors():
        await context.store.delete_patient(patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Claim issues


@router.get("/claims", response_model=list[ClaimIssue])
def list_claim_issues(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[ClaimIssue]:
    return filter_visible(context.store.claim_issues, principal)


@router.post("/claims", response_model=ClaimIssue, status_code=status.HTTP_201_CREATED)
async def create_claim_issue(
    payload: ClaimIssueCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> ClaimIssue:
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_claim_issue(payload)


@router.patch("/claims/{issue_id}", response_model=ClaimIssue)
async def update_claim_issue(
    issue_id: str,
    payload: ClaimIssueUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> ClaimIssue:
    find_visible(context.store.claim_issues, issue_id, principal)
    with store_errors():
        return await context.store.update_claim_issue(issue_id, payload)


@router.delete("/claims/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_claim_issue(
    issue_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.claim_issues, issue_id, principal)
    with store_errors():
        await context.store.delete_claim_issue(issue_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Timecards


@router.get("/timecards", response_model=list[TimecardEntry])
def list_timecards(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[TimecardEntry]:
    return filter_visible(context.store.timecard_entries, principal)


@router.post("/timecards", response_model=TimecardEntry, status_code=status.HTTP_201_CREATED)
async def create_timecard(
    payload: TimecardEntryCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> TimecardEntry:
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_timecard_entry(payload)


@router.patch("/timecards/{entry_id}", response_model=TimecardEntry)
async def update_timecard(
    entry_id: str,
    payload: TimecardEntryUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> TimecardEntry:
    find_visible(context.store.timecard_entries, entry_id, principal)
    with store_errors():
        return await context.store.update_timecard_entry(entry_id, payload)


@router.delete("/timecards/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_timecard(
    entry_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.timecard_entries, entry_id, principal)
    with store_errors():
        await context.store.delete_timecard_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Accounts receivable


@router.get("/receivables", response_model=list[AccountsReceivable])
def list_receivables(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[AccountsReceivable]:
    return filter_visible(context.store.accounts_receivable, principal)


@router.post("/receivables", response_model=AccountsReceivable, status_code=status.HTTP_201_CREATED)
async def create_receivable(
    payload: AccountsReceivableCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> AccountsReceivable:
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_accounts_receivable(payload)


@router.patch("/receivables/{record_id}", response_model=AccountsReceivable)
async def update_receivable(
    record_id: str,
    payload: AccountsReceivableUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> AccountsReceivable:
    find_visible(context.store.accounts_receivable, record_id, principal)
    with store_errors():
        return await context.store.update_accounts_receivable(record_id, payload)


@router.delete("/receivables/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receivable(
    record_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.accounts_receivable, record_id, principal)
    with store_errors():
        await context.store.delete_accounts_receivable(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/receivables/refresh", response_model=list[AccountsReceivable])
async def refresh_receivables(
    month: str | None = Query(default=None),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[AccountsReceivable]:
    scope = scope_for(principal)
    if scope == NO_ACCESS:
        return []
    if month:
        try:
            parse_month_label(month)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    with store_errors():
        records = await context.store.refresh_accounts_receivable(
            clinic_id=None if scope.unrestricted else scope.clinic_id, month=month
        )
    return filter_visible(records, principal)


@router.get("/receivables/export.csv")
def export_receivables(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> Response:
    records = filter_visible(context.store.accounts_receivable, principal)
    return Response(
        content=accounts_receivable_to_csv(records),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="accounts_receivable.csv"'},
    )
