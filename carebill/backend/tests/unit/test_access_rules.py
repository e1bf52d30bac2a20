"""Tests for role visibility and status workflows."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from carebill.backend.src.schemas.billing_entry import BillingEntry
from carebill.backend.src.schemas.patient import Patient
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.transitions import (
    BILLING_ENTRY_WORKFLOW,
    INVOICE_WORKFLOW,
    TODO_ITEM_WORKFLOW,
    InvalidTransitionError,
)
from carebill.backend.src.services.visibility import (
    NO_ACCESS,
    can_edit_billing,
    can_manage_users,
    filter_visible,
    scope_for,
)


def _user(role: str, clinic_id: str | None = None, provider_id: str | None = None) -> UserProfile:
    return UserProfile(
        id=f"u-{role}", email=f"{role}@example.com", name=role, role=role, clinic_id=clinic_id, provider_id=provider_id
    )


def _entry(entry_id: str, clinic_id: str, provider_id: str) -> BillingEntry:
    return BillingEntry(
        id=entry_id,
        provider_id=provider_id,
        clinic_id=clinic_id,
        date="2025-01-01",
        patient_name="Pat",
        procedure_code="99212",
        amount=10,
    )


ENTRIES = [_entry("b1", "c1", "p1"), _entry("b2", "c1", "p2"), _entry("b3", "c2", "p3")]


def test_admins_see_everything() -> None:
    assert filter_visible(ENTRIES, _user("admin")) == ENTRIES
    assert filter_visible(ENTRIES, _user("super_admin")) == ENTRIES


def test_clinic_staff_see_their_clinic() -> None:
    visible = filter_visible(ENTRIES, _user("office_staff", clinic_id="c1"))

    assert [entry.id for entry in visible] == ["b1", "b2"]


def test_provider_sees_only_own_entries() -> None:
    visible = filter_visible(ENTRIES, _user("provider", clinic_id="c1", provider_id="p2"))

    assert [entry.id for entry in visible] == ["b2"]


def test_provider_falls_back_to_clinic_for_records_without_provider() -> None:
    patients = [
        Patient(id="x1", patient_id="P1", first_name="A", last_name="B", clinic_id="c1"),
        Patient(id="x2", patient_id="P2", first_name="C", last_name="D", clinic_id="c2"),
    ]

    visible = filter_visible(patients, _user("provider", clinic_id="c1", provider_id="p1"))

    assert [patient.id for patient in visible] == ["x1"]


def test_unassigned_principals_see_nothing() -> None:
    assert scope_for(_user("provider", clinic_id="c1")) == NO_ACCESS
    assert scope_for(_user("billing_staff")) == NO_ACCESS
    assert scope_for(None) == NO_ACCESS
    assert filter_visible(ENTRIES, _user("billing_viewer")) == []


def test_capability_helpers() -> None:
    assert can_manage_users(_user("admin"))
    assert not can_manage_users(_user("billing_staff", clinic_id="c1"))
    assert can_edit_billing(_user("billing_staff", clinic_id="c1"))
    assert not can_edit_billing(_user("billing_viewer", clinic_id="c1"))
    assert not can_edit_billing(None)


def test_reapplying_current_status_is_allowed() -> None:
    assert BILLING_ENTRY_WORKFLOW.can_transition("paid", "paid")


def test_terminal_invoice_status_cannot_reopen() -> None:
    with pytest.raises(InvalidTransitionError) as excinfo:
        INVOICE_WORKFLOW.ensure("paid", "draft")

    assert excinfo.value.current == "paid"
    assert "invoice" in str(excinfo.value)


def test_unknown_target_status_is_rejected() -> None:
    assert not TODO_ITEM_WORKFLOW.can_transition("waiting", "archived")


@pytest.mark.parametrize("target", ["in_progress", "ip", "on_hold", "completed"])
def test_waiting_todo_can_move_anywhere_active(target: str) -> None:
    TODO_ITEM_WORKFLOW.ensure("waiting", target)
