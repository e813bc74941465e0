from __future__ import annotations

from typing import Any, Dict, Optional

from ..query.dates import parse_instant
from .registry import register_api
from .serializers import (
    serialize_category,
    serialize_event,
    serialize_stats,
    serialize_task,
    serialize_time_block,
)
from .state import api_state


def _pagination(query, count: int) -> Dict[str, Any]:
    return {"limit": query.page.limit, "offset": query.page.offset, "count": count}


# Tasks ----------------------------------------------------------------------


@register_api(
    "tasks_list",
    description="List the caller's tasks matching status, priority, category, search and date filters.",
    category="tasks",
    tags=("read",),
)
async def tasks_list(filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    service = api_state.tasks
    query = service.compile(filters)
    tasks = await service.list_tasks(query)
    return {"tasks": [serialize_task(task) for task in tasks], "pagination": _pagination(query, len(tasks))}


@register_api(
    "tasks_get",
    description="Fetch a single task by id.",
    category="tasks",
    tags=("read",),
)
async def tasks_get(task_id: str) -> Dict[str, Any]:
    return {"task": serialize_task(await api_state.tasks.get_task(task_id))}


@register_api(
    "tasks_create",
    description="Create a task. Accepts title, description, priority, dueDate, categoryId and estimatedMinutes.",
    category="tasks",
    tags=("write",),
)
async def tasks_create(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"task": serialize_task(await api_state.tasks.create_task(data))}


@register_api(
    "tasks_update",
    description="Update a task; moving into or out of completed stamps or clears completedAt.",
    category="tasks",
    tags=("write",),
)
async def tasks_update(task_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"task": serialize_task(await api_state.tasks.update_task(task_id, data))}


@register_api(
    "tasks_delete",
    description="Delete a task and its time blocks.",
    category="tasks",
    tags=("write",),
)
async def tasks_delete(task_id: str) -> Dict[str, Any]:
    await api_state.tasks.delete_task(task_id)
    return {"deleted": task_id}


@register_api(
    "tasks_toggle_status",
    description="Toggle a task between completed and todo.",
    category="tasks",
    tags=("write",),
)
async def tasks_toggle_status(task_id: str) -> Dict[str, Any]:
    return {"task": serialize_task(await api_state.tasks.toggle_status(task_id))}


# Time blocks ----------------------------------------------------------------


@register_api(
    "time_blocks_list",
    description="List the caller's time blocks filtered by type, taskId, startDate and endDate.",
    category="time_blocks",
    tags=("read",),
)
async def time_blocks_list(filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    service = api_state.time_blocks
    query = service.compile(filters)
    blocks = await service.list_time_blocks(query)
    return {
        "timeBlocks": [serialize_time_block(block) for block in blocks],
        "pagination": _pagination(query, len(blocks)),
    }


@register_api(
    "time_blocks_get",
    description="Fetch a single time block by id.",
    category="time_blocks",
    tags=("read",),
)
async def time_blocks_get(time_block_id: str) -> Dict[str, Any]:
    return {"timeBlock": serialize_time_block(await api_state.time_blocks.get_time_block(time_block_id))}


@register_api(
    "time_blocks_create",
    description="Create a time block; endTime must be after startTime.",
    category="time_blocks",
    tags=("write",),
)
async def time_blocks_create(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"timeBlock": serialize_time_block(await api_state.time_blocks.create_time_block(data))}


@register_api(
    "time_blocks_update",
    description="Update a time block; the merged bounds must keep endTime after startTime.",
    category="time_blocks",
    tags=("write",),
)
async def time_blocks_update(time_block_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    block = await api_state.time_blocks.update_time_block(time_block_id, data)
    return {"timeBlock": serialize_time_block(block)}


@register_api(
    "time_blocks_delete",
    description="Delete a time block.",
    category="time_blocks",
    tags=("write",),
)
async def time_blocks_delete(time_block_id: str) -> Dict[str, Any]:
    await api_state.time_blocks.delete_time_block(time_block_id)
    return {"deleted": time_block_id}


# Categories -----------------------------------------------------------------


@register_api(
    "categories_list",
    description="List the caller's categories ordered by name.",
    category="categories",
    tags=("read",),
)
async def categories_list() -> Dict[str, Any]:
    categories = await api_state.categories.list_categories()
    return {"categories": [serialize_category(category) for category in categories]}


@register_api(
    "categories_create",
    description="Create a category; names are unique per user.",
    category="categories",
    tags=("write",),
)
async def categories_create(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"category": serialize_category(await api_state.categories.create_category(data))}


@register_api(
    "categories_update",
    description="Rename or recolor a category.",
    category="categories",
    tags=("write",),
)
async def categories_update(category_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"category": serialize_category(await api_state.categories.update_category(category_id, data))}


@register_api(
    "categories_delete",
    description="Delete a category; its tasks are kept without a category.",
    category="categories",
    tags=("write",),
)
async def categories_delete(category_id: str) -> Dict[str, Any]:
    await api_state.categories.delete_category(category_id)
    return {"deleted": category_id}


# Calendar and dashboard -----------------------------------------------------


@register_api(
    "calendar_events",
    description="Tasks and time blocks in the window projected as calendar events.",
    category="calendar",
    tags=("read",),
)
async def calendar_events(start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
    start_at = parse_instant(start, field="start") if start else None
    end_at = parse_instant(end, field="end") if end else None
    events = await api_state.calendar.events_between(start_at, end_at)
    return {"events": [serialize_event(event) for event in events]}


@register_api(
    "dashboard",
    description="Task statistics, today's focus and recent activity.",
    category="dashboard",
    tags=("read",),
)
async def dashboard() -> Dict[str, Any]:
    service = api_state.dashboard
    return {
        "stats": serialize_stats(await service.stats()),
        "todaysFocus": [serialize_task(task) for task in await service.todays_focus()],
        "recentActivity": [serialize_task(task) for task in await service.recent_activity()],
    }


# Auth -----------------------------------------------------------------------


@register_api(
    "auth_sign_in",
    description="Sign in to Supabase with email and password; later calls run as that user.",
    category="auth",
    tags=("write",),
)
async def auth_sign_in(email: str, password: str) -> Dict[str, Any]:
    return {"userId": await api_state.auth.sign_in_with_password(email, password)}


@register_api(
    "auth_restore_session",
    description="Resume a Supabase session from an access token and refresh token.",
    category="auth",
    tags=("write",),
)
async def auth_restore_session(access_token: str, refresh_token: str) -> Dict[str, Any]:
    return {"userId": await api_state.auth.restore_session(access_token, refresh_token)}


@register_api(
    "auth_status",
    description="Report the signed-in user, if any.",
    category="auth",
    tags=("read",),
)
async def auth_status() -> Dict[str, Any]:
    return {"userId": api_state.auth.current_user_id()}


@register_api(
    "auth_sign_out",
    description="Sign out and drop every cached result.",
    category="auth",
    tags=("write",),
)
async def auth_sign_out() -> Dict[str, Any]:
    await api_state.auth.sign_out()
    return {"userId": None}
