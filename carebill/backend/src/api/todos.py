"""Follow-up todo endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from carebill.backend.src.api.deps import (
    ensure_in_scope,
    find_visible,
    require_editor,
    store_errors,
    with_default_clinic,
)
from carebill.backend.src.core.security import get_context, get_current_user
from carebill.backend.src.schemas.todo import TodoItem, TodoItemCreate, TodoItemUpdate
from carebill.backend.src.schemas.user import UserProfile
from carebill.backend.src.services.context import AppContext
from carebill.backend.src.services.visibility import NO_ACCESS, filter_visible, scope_for

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=list[TodoItem])
def list_todos(
    status_filter: str | None = Query(default=None, alias="status"),
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[TodoItem]:
    items = filter_visible(context.store.todo_items, principal)
    if status_filter:
        items = [item for item in items if item.status == status_filter]
    return items


@router.post("", response_model=TodoItem, status_code=status.HTTP_201_CREATED)
async def create_todo(
    payload: TodoItemCreate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> TodoItem:
    payload = with_default_clinic(payload, principal)
    ensure_in_scope(payload, principal)
    with store_errors():
        return await context.store.add_todo_item(payload, created_by=principal.id)


@router.patch("/{item_id}", response_model=TodoItem)
async def update_todo(
    item_id: str,
    payload: TodoItemUpdate,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> TodoItem:
    find_visible(context.store.todo_items, item_id, principal)
    with store_errors():
        return await context.store.update_todo_item(item_id, payload)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(
    item_id: str,
    principal: UserProfile = Depends(require_editor),
    context: AppContext = Depends(get_context),
) -> Response:
    find_visible(context.store.todo_items, item_id, principal)
    with store_errors():
        await context.store.delete_todo_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/refresh", response_model=list[TodoItem])
async def refresh_todos(
    principal: UserProfile = Depends(get_current_user),
    context: AppContext = Depends(get_context),
) -> list[TodoItem]:
    scope = scope_for(principal)
    if scope == NO_ACCESS:
        return []
    with store_errors():
        items = await context.store.refresh_todo_items(
            clinic_id=None if scope.unrestricted else scope.clinic_id
        )
    return filter_visible(items, principal)
