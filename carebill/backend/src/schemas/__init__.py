"""View-model schemas for every entity the dashboard works with."""

from .billing_entry import BillingEntry, BillingEntryCreate, BillingEntryUpdate
from .claim_issue import ClaimIssue, ClaimIssueCreate, ClaimIssueUpdate
from .clinic import (
    Clinic,
    ClinicCreate,
    ClinicUpdate,
    Provider,
    ProviderCreate,
    ProviderUpdate,
)
from .invoice import Invoice, InvoiceCreate, InvoiceItem, InvoiceUpdate
from .patient import Patient, PatientCreate, PatientUpdate
from .receivable import (
    AccountsReceivable,
    AccountsReceivableCreate,
    AccountsReceivableUpdate,
)
from .timecard import TimecardEntry, TimecardEntryCreate, TimecardEntryUpdate
from .todo import TodoItem, TodoItemCreate, TodoItemUpdate
from .user import UserProfile, UserProfileUpdate

__all__ = [
    "AccountsReceivable",
    "AccountsReceivableCreate",
    "AccountsReceivableUpdate",
    "BillingEntry",
    "BillingEntryCreate",
    "BillingEntryUpdate",
    "ClaimIssue",
    "ClaimIssueCreate",
    "ClaimIssueUpdate",
    "Clinic",
    "ClinicCreate",
    "ClinicUpdate",
    "Invoice",
    "InvoiceCreate",
    "InvoiceItem",
    "InvoiceUpdate",
    "Patient",
    "PatientCreate",
    "PatientUpdate",
    "Provider",
    "ProviderCreate",
    "ProviderUpdate",
    "TimecardEntry",
    "TimecardEntryCreate",
    "TimecardEntryUpdate",
    "TodoItem",
    "TodoItemCreate",
    "TodoItemUpdate",
    "UserProfile",
    "UserProfileUpdate",
]
