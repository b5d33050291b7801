# PURPOSE: /tasks endpoints. Handlers only parse input, call the task store
# or query engine with the caller's id as owner, and wrap the result.

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from .. import queries, store_db
from ..api.deps import get_db, parse_completed, parse_limit, parse_page, parse_priority
from ..auth import get_current_user
from ..db_models import MAX_ROW_ID
from ..domain import Priority
from ..models import (
    ApiResponse,
    BulkDeleted,
    BulkUpdated,
    PaginatedResponse,
    Pagination,
    TaskCreate,
    TaskOut,
    TaskStats,
    TaskUpdate,
    UserPublic,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

TaskId = Annotated[int, Path(gt=0, le=MAX_ROW_ID, description="Task id (positive integer)")]


def _out(row) -> TaskOut:
    return TaskOut.model_validate(row)


@router.get("", response_model=PaginatedResponse[TaskOut])
def list_tasks(
    user: UserPublic = Depends(get_current_user),
    completed: bool | None = Depends(parse_completed),
    priority: Priority | None = Depends(parse_priority),
    search: str | None = None,
    page: int | None = Depends(parse_page),
    limit: int | None = Depends(parse_limit),
    db: Session = Depends(get_db),
):
    filters = queries.TaskFilter(
        owner_id=user.id, completed=completed, priority=priority, search=search
    )
    result = queries.list_tasks(db, filters, queries.PageRequest.clamped(page, limit))
    if result.items:
        message = "Tasks retrieved successfully"
    elif filters.is_narrowed:
        message = "No tasks match the given filters"
    else:
        message = "No tasks yet"
    return PaginatedResponse[TaskOut](
        message=message,
        data=[_out(row) for row in result.items],
        pagination=Pagination(**result.pagination()),
    )


@router.post("", response_model=ApiResponse[TaskOut], status_code=status.HTTP_201_CREATED)
def create_task(
    item: TaskCreate,
    response: Response,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = store_db.create_task(db, item, owner_id=user.id)
    response.headers["Location"] = f"/api/tasks/{row.id}"
    return ApiResponse[TaskOut](message="Task created successfully", data=_out(row))


# Fixed paths must be registered before /{task_id}


@router.get("/stats", response_model=ApiResponse[TaskStats])
def task_stats(
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stats = queries.task_stats(db, user.id)
    return ApiResponse[TaskStats](message="Statistics retrieved successfully", data=TaskStats(**stats))


@router.delete("/completed", response_model=ApiResponse[BulkDeleted])
def delete_completed(
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = queries.delete_completed(db, user.id)
    return ApiResponse[BulkDeleted](
        message=f"{deleted} completed task(s) removed", data=BulkDeleted(deleted=deleted)
    )


@router.put("/mark-all-completed", response_model=ApiResponse[BulkUpdated])
def mark_all_completed(
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = queries.mark_all_completed(db, user.id)
    return ApiResponse[BulkUpdated](
        message=f"{updated} task(s) marked as completed", data=BulkUpdated(updated=updated)
    )


@router.get("/{task_id}", response_model=ApiResponse[TaskOut])
def get_task(
    task_id: TaskId,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = store_db.get_task(db, task_id, owner_id=user.id)
    return ApiResponse[TaskOut](message="Task retrieved successfully", data=_out(row))


@router.put("/{task_id}", response_model=ApiResponse[TaskOut])
def update_task(
    item: TaskUpdate,
    task_id: TaskId,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = store_db.update_task(db, task_id, item.to_patch(), owner_id=user.id)
    return ApiResponse[TaskOut](message="Task updated successfully", data=_out(row))


@router.delete("/{task_id}", response_model=ApiResponse[dict])
def delete_task(
    task_id: TaskId,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store_db.delete_task(db, task_id, owner_id=user.id)
    return ApiResponse[dict](message="Task deleted successfully", data={})


@router.patch("/{task_id}/toggle", response_model=ApiResponse[TaskOut])
def toggle_task(
    task_id: TaskId,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = store_db.toggle_task(db, task_id, owner_id=user.id)
    state = "completed" if row.completed else "pending"
    return ApiResponse[TaskOut](message=f"Task marked as {state}", data=_out(row))
