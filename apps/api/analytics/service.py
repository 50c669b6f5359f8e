# apps/api/analytics/service.py

import math
from datetime import datetime, timedelta
from typing import Annotated, Optional

from sqlalchemy import func, select

from apps.api.analytics.schema import KpiResponse
from apps.api.tenant.models import Tenant
from apps.api.ticket.models import Ticket
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.db.fields import utcnow


def round_minutes(seconds: Optional[float]) -> Optional[int]:
    """Seconds to whole minutes, rounded half up; None stays None."""
    if seconds is None:
        return None
    return math.floor(float(seconds) / 60 + 0.5)


def elapsed_seconds(dialect_name: str, start_column, end_column):
    """SQL expression for ``end - start`` in seconds."""
    if dialect_name == "postgresql":
        return func.extract("epoch", end_column - start_column)
    # SQLite keeps datetimes as ISO strings.
    return (func.julianday(end_column) - func.julianday(start_column)) * 86400


class AnalyticsService(AbstractService):
    DEPENDENCIES = {"session": SessionDep}

    async def kpis(self, tenant: Tenant, now: Optional[datetime] = None) -> KpiResponse:
        """
        Ticket counters for the admin dashboard.

        "Today" starts at UTC midnight; "this week" is the last 7 days.
        Averages are computed by the database over every ticket that has
        both timestamps.
        """
        now = now or utcnow()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = now - timedelta(days=7)

        tickets_today = await self._count_since(tenant, today_start)
        tickets_this_week = await self._count_since(tenant, week_start)

        request_to_ready = await self._average_seconds(
            tenant, Ticket.requested_at, Ticket.ready_at
        )
        ready_to_delivered = await self._average_seconds(
            tenant, Ticket.ready_at, Ticket.delivered_at
        )
        return KpiResponse(
            tickets_today=tickets_today,
            tickets_this_week=tickets_this_week,
            avg_request_to_ready_minutes=round_minutes(request_to_ready),
            avg_ready_to_delivered_minutes=round_minutes(ready_to_delivered),
        )

    async def _count_since(self, tenant: Tenant, since: datetime) -> int:
        return await self.session.scalar(
            select(func.count(Ticket.id)).where(
                Ticket.tenant_id == tenant.id, Ticket.created_at >= since
            )
        )

    async def _average_seconds(
        self, tenant: Tenant, start_column, end_column
    ) -> Optional[float]:
        elapsed = elapsed_seconds(
            self.session.bind.dialect.name, start_column, end_column
        )
        return await self.session.scalar(
            select(func.avg(elapsed)).where(
                Ticket.tenant_id == tenant.id,
                start_column.is_not(None),
                end_column.is_not(None),
            )
        )


AnalyticsServiceDependency = Annotated[AnalyticsService, AnalyticsService.get_dependency()]
