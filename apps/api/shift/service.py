import logging
from typing import Annotated, List, Optional

from sqlalchemy import select

from apps.api.shift.models import Shift
from apps.api.shift.schema import CheckInRequest, LocationRequest
from apps.api.staff.models import TenantUser
from apps.api.tenant.models import Tenant
from apps.api.ticket.lifecycle import EventType
from apps.api.ticket.models import Event
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.db.fields import utcnow
from core.exceptions import FailedPreconditionException, InvalidRequestException
from core.fastapi.response.pagination import clamp_limit
from core.utils.geo import is_within_radius

logger = logging.getLogger(__name__)


def _location(data: LocationRequest) -> dict:
    location = {"lat": data.lat, "lng": data.lng}
    if data.accuracy is not None:
        location["accuracy"] = data.accuracy
    return location


class ShiftService(AbstractService):
    DEPENDENCIES = {"session": SessionDep}

    async def current_shift(self, tenant: Tenant, staff: TenantUser) -> Optional[Shift]:
        return await self.session.scalar(
            select(Shift)
            .where(
                Shift.tenant_id == tenant.id,
                Shift.user_id == staff.id,
                Shift.check_out_at.is_(None),
            )
            .order_by(Shift.check_in_at.desc())
            .limit(1)
        )

    async def check_in(
        self, tenant: Tenant, staff: TenantUser, data: CheckInRequest
    ) -> Shift:
        """
        Open a shift. When the tenant has a geofence the position must lie
        inside it.
        """
        geofence = tenant.geofence
        if geofence and not is_within_radius(
            geofence["lat"], geofence["lng"], geofence["radiusMeters"], data.lat, data.lng
        ):
            raise InvalidRequestException(
                "Check-in only allowed within the venue area. Please enable location.",
                error_code="OUTSIDE_GEOFENCE",
            )
        if await self.current_shift(tenant, staff) is not None:
            raise FailedPreconditionException(
                "Already checked in", error_code="SHIFT_ALREADY_OPEN"
            )

        now = utcnow()
        shift = Shift(
            tenant_id=tenant.id,
            user_id=staff.id,
            check_in_at=now,
            check_in_location=_location(data),
            device_id=data.device_id,
        )
        self.session.add(shift)
        await self.session.flush()
        self.session.add(
            Event(
                tenant_id=tenant.id,
                actor_user_id=staff.id,
                type=EventType.SHIFT_CHECK_IN.value,
                at=now,
                meta={"shiftId": str(shift.id)},
            )
        )
        await self.session.commit()
        logger.info(f"Staff {staff.id} checked in (shift {shift.id})")
        return shift

    async def check_out(
        self, tenant: Tenant, staff: TenantUser, data: LocationRequest
    ) -> Shift:
        shift = await self.current_shift(tenant, staff)
        if shift is None:
            raise FailedPreconditionException(
                "No open shift to check out of", error_code="NO_OPEN_SHIFT"
            )
        now = utcnow()
        shift.check_out_at = now
        shift.check_out_location = _location(data)
        self.session.add(
            Event(
                tenant_id=tenant.id,
                actor_user_id=staff.id,
                type=EventType.SHIFT_CHECK_OUT.value,
                at=now,
                meta={"shiftId": str(shift.id)},
            )
        )
        await self.session.commit()
        logger.info(f"Staff {staff.id} checked out (shift {shift.id})")
        return shift

    async def list_shifts(self, tenant: Tenant, limit: int = 50) -> List[Shift]:
        result = await self.session.scalars(
            select(Shift)
            .where(Shift.tenant_id == tenant.id)
            .order_by(Shift.check_in_at.desc())
            .limit(clamp_limit(limit))
        )
        return list(result.unique().all())


ShiftServiceDependency = Annotated[ShiftService, ShiftService.get_dependency()]
