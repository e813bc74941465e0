"""Application services orchestrating data access, caching and domain logic."""

from __future__ import annotations

from .auth import AuthService
from .calendar import CalendarService
from .categories import CategoryService
from .context import ServiceContext
from .dashboard import DashboardService, DashboardStats
from .mutations import Mutation, MutationCoordinator, MutationState, TaskMutationCoordinator
from .tasks import TaskService
from .time_blocks import TimeBlockService

__all__ = [
    "AuthService",
    "CalendarService",
    "CategoryService",
    "DashboardService",
    "DashboardStats",
    "Mutation",
    "MutationCoordinator",
    "MutationState",
    "ServiceContext",
    "TaskMutationCoordinator",
    "TaskService",
    "TimeBlockService",
]
