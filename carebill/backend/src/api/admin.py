"""Administrative endpoints for clinics, providers and user profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from carebill.backend.src.api.deps import store_errors
from carebill.backend.src.core.security import get_context, require_admin_user
from carebill.backend.src.schemas.clinic import (
    Clinic,
    ClinicCreate,
    ClinicUpdate,
    Provider,
    ProviderCreate,
    ProviderUpdate,
)
from carebill.backend.src.schemas.user import UserProfile, UserProfileUpdate
from carebill.backend.src.services.context import AppContext

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_user)],
)


@router.get("/clinics", response_model=list[Clinic])
def list_clinics(context: AppContext = Depends(get_context)) -> list[Clinic]:
    return context.store.clinics


@router.post("/clinics", response_model=Clinic, status_code=status.HTTP_201_CREATED)
async def create_clinic(
    payload: ClinicCreate, context: AppContext = Depends(get_context)
) -> Clinic:
    with store_errors():
        return await context.store.add_clinic(payload)


@router.patch("/clinics/{clinic_id}", response_model=Clinic)
async def update_clinic(
    clinic_id: str, payload: ClinicUpdate, context: AppContext = Depends(get_context)
) -> Clinic:
    """Update a clinic; deactivation is ``{"active": false}``."""

    with store_errors():
        return await context.store.update_clinic(clinic_id, payload)


@router.get("/providers", response_model=list[Provider])
def list_providers(context: AppContext = Depends(get_context)) -> list[Provider]:
    return context.store.providers


@router.post("/providers", response_model=Provider, status_code=status.HTTP_201_CREATED)
async def create_provider(
    payload: ProviderCreate, context: AppContext = Depends(get_context)
) -> Provider:
    with store_errors():
        return await context.store.add_provider(payload)


@router.patch("/providers/{provider_id}", response_model=Provider)
async def update_provider(
    provider_id: str, payload: ProviderUpdate, context: AppContext = Depends(get_context)
) -> Provider:
    with store_errors():
        return await context.store.update_provider(provider_id, payload)


@router.get("/users", response_model=list[UserProfile])
async def list_users(context: AppContext = Depends(get_context)) -> list[UserProfile]:
    """Return every user profile, fetched fresh from the backend."""

    with store_errors():
        return await context.store.load_user_profiles()


@router.patch("/users/{user_id}", response_model=UserProfile)
async def update_user(
    user_id: str, payload: UserProfileUpdate, context: AppContext = Depends(get_context)
) -> UserProfile:
    with store_errors():
        return await context.store.update_user_profile(user_id, payload)
