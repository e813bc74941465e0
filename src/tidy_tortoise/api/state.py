from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..services import (
    AuthService,
    CalendarService,
    CategoryService,
    DashboardService,
    ServiceContext,
    TaskService,
    TimeBlockService,
)


@dataclass(slots=True)
class ApiState:
    """Services shared by every registered API function.

    The context is built on first use so importing the API does not read the
    environment; :meth:`bind` swaps in another context.
    """

    _context: Optional[ServiceContext] = None

    @property
    def context(self) -> ServiceContext:
        if self._context is None:
            self._context = ServiceContext()
        return self._context

    def bind(self, context: ServiceContext) -> None:
        self._context = context

    @property
    def auth(self) -> AuthService:
        return AuthService(self.context)

    @property
    def tasks(self) -> TaskService:
        return TaskService(self.context)

    @property
    def time_blocks(self) -> TimeBlockService:
        return TimeBlockService(self.context)

    @property
    def categories(self) -> CategoryService:
        return CategoryService(self.context)

    @property
    def calendar(self) -> CalendarService:
        return CalendarService(self.context)

    @property
    def dashboard(self) -> DashboardService:
        return DashboardService(self.context)


api_state = ApiState()
