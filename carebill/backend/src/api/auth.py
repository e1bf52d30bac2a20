"""Account commands backed by the session manager."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.user import (
    CommandResult,
    LoginRequest,
    PasswordResetRequest,
    PasswordUpdateRequest,
    SignupRequest,
    UserProfile,
)
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.session_manager import AuthResult

router = APIRouter(prefix="/auth", tags=["auth"])


def _result(result: AuthResult) -> CommandResult:
    return CommandResult(success=result.success, error=result.error)


@router.post("/login", response_model=CommandResult)
async def login(payload: LoginRequest, context: AppContext = Depends(get_context)) -> CommandResult:
    """Sign in and, once the principal is resolved, load the store."""

    result = await context.session.login(payload.email, payload.password)
    if result.success and context.session.is_authenticated:
        await context.load_data()
    return _result(result)


@router.post("/signup", response_model=CommandResult)
async def signup(payload: SignupRequest, context: AppContext = Depends(get_context)) -> CommandResult:
    result = await context.session.signup(
        payload.email,
        payload.password,
        payload.name,
        role=payload.role,
        clinic_id=payload.clinic_id,
        provider_id=payload.provider_id,
    )
    if result.success and context.session.is_authenticated:
        await context.load_data()
    return _result(result)


@router.post("/logout", response_model=CommandResult)
async def logout(context: AppContext = Depends(get_context)) -> CommandResult:
    return _result(await context.session.logout())


@router.post("/reset-password", response_model=CommandResult)
async def reset_password(
    payload: PasswordResetRequest, context: AppContext = Depends(get_context)
) -> CommandResult:
    return _result(await context.session.reset_password(payload.email))


@router.post("/update-password", response_model=CommandResult)
async def update_password(
    payload: PasswordUpdateRequest, context: AppContext = Depends(get_context)
) -> CommandResult:
    return _result(await context.session.update_password(
        payload.new_password, token_hash=payload.token_hash
    ))


@router.post("/refresh", response_model=CommandResult)
async def refresh(context: AppContext = Depends(get_context)) -> CommandResult:
    return _result(await context.session.refresh_session())


@router.get("/me", response_model=UserProfile)
def read_current_user(current_user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Return the signed-in principal."""

    return current_user
