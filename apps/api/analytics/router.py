# apps/api/analytics/router.py

from fastapi import APIRouter

from apps.api.analytics.schema import KpiResponse
from apps.api.analytics.service import AnalyticsServiceDependency
from apps.api.auth.dependency import AdminDependency, TenantDependency

router = APIRouter(
    prefix="/j/{slug}/admin",
    tags=["Analytics"],
)


@router.get("/kpis", summary="Dashboard KPIs")
async def kpis_endpoint(
    tenant: TenantDependency,
    admin: AdminDependency,
    analytics_service: AnalyticsServiceDependency,
) -> KpiResponse:
    return await analytics_service.kpis(tenant)
