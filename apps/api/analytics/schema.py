# apps/api/analytics/schema.py

from typing import Optional

from core.fastapi.response.models import CustomBaseModel


class KpiResponse(CustomBaseModel):
    """Dashboard counters; averages are whole minutes, null without samples"""

    tickets_today: int
    tickets_this_week: int
    avg_request_to_ready_minutes: Optional[int] = None
    avg_ready_to_delivered_minutes: Optional[int] = None
