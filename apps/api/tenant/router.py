from fastapi import APIRouter, Response

from apps.api.auth.dependency import AdminDependency, TenantDependency
from apps.api.tenant.schema import (
    PublicConfigResponse,
    TenantSettingsResponse,
    UpdateSettingsRequest,
    UpdateSettingsResponse,
)
from apps.api.tenant.service import TenantServiceDependency

router = APIRouter(prefix="/j/{slug}", tags=["Tenant"])


@router.get("/config", summary="Public tenant configuration")
async def public_config_endpoint(
    tenant: TenantDependency, response: Response
) -> PublicConfigResponse:
    response.headers["Cache-Control"] = "public, s-maxage=60, stale-while-revalidate=300"
    return tenant


@router.get("/admin/settings", summary="Tenant settings")
async def get_settings_endpoint(
    tenant: TenantDependency, admin: AdminDependency
) -> TenantSettingsResponse:
    return tenant


@router.patch("/admin/settings", summary="Update tenant settings")
async def update_settings_endpoint(
    body: UpdateSettingsRequest,
    tenant: TenantDependency,
    admin: AdminDependency,
    tenant_service: TenantServiceDependency,
) -> UpdateSettingsResponse:
    tenant = await tenant_service.update_settings(tenant, body)
    return UpdateSettingsResponse(
        settings=TenantSettingsResponse.model_validate(tenant)
    )
