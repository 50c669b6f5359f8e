import logging
from typing import Annotated, List, Optional
from uuid import UUID

from sqlalchemy import select

from apps.api.staff.models import StaffRole, TenantUser
from apps.api.tenant.models import Tenant
from core.architecture.service import AbstractService
from core.authentication.firebase.client import FirebaseAuthClient
from core.authentication.firebase.dependency import FirebaseClientDependency
from core.db.core import SessionDep
from core.db.fields import utcnow
from core.exceptions import ConflictException, ForbiddenException, NotFoundException

logger = logging.getLogger(__name__)

EMPLOYEE_ROLES = (StaffRole.MANAGER.value, StaffRole.VALET.value)


def coerce_employee_role(role: Optional[str]) -> str:
    """Admins can only hand out manager or valet; anything else is a valet."""
    return role if role in EMPLOYEE_ROLES else StaffRole.VALET.value


class StaffService(AbstractService):
    DEPENDENCIES = {"session": SessionDep, "firebase_client": FirebaseClientDependency}

    def __init__(
        self, session: SessionDep, firebase_client: FirebaseAuthClient, **kwargs
    ):
        super().__init__(session=session, **kwargs)
        self.firebase_client = firebase_client

    async def has_users(self, tenant: Tenant) -> bool:
        user_id = await self.session.scalar(
            select(TenantUser.id).where(TenantUser.tenant_id == tenant.id).limit(1)
        )
        return user_id is not None

    async def bootstrap_first_admin(
        self, tenant: Tenant, email: str, password: str, name: str
    ) -> TenantUser:
        """
        Create the tenant's first admin. Only allowed while the tenant has no
        staff at all; the check runs under the tenant row lock so two
        concurrent sign-ups cannot both pass it.
        """
        await self.session.execute(
            select(Tenant.id).where(Tenant.id == tenant.id).with_for_update()
        )
        if await self.has_users(tenant):
            raise ForbiddenException(
                "First admin already exists", error_code="FIRST_ADMIN_EXISTS"
            )

        account = self.firebase_client.create_user(
            email=email, password=password, display_name=name
        )
        user = await self._add_user(tenant, account.uid, email, name, StaffRole.ADMIN.value)
        logger.info(f"Bootstrapped first admin {user.id} for tenant {tenant.slug}")
        return user

    async def create_employee(
        self,
        tenant: Tenant,
        email: str,
        password: str,
        name: str,
        role: Optional[str] = None,
    ) -> TenantUser:
        account = self.firebase_client.create_user(
            email=email, password=password, display_name=name
        )
        user = await self._add_user(
            tenant, account.uid, email, name, coerce_employee_role(role)
        )
        logger.info(f"Created {user.role} {user.id} for tenant {tenant.slug}")
        return user

    async def list_employees(self, tenant: Tenant) -> List[TenantUser]:
        result = await self.session.scalars(
            select(TenantUser)
            .where(TenantUser.tenant_id == tenant.id)
            .order_by(TenantUser.created_at)
        )
        return list(result.all())

    async def set_employee_active(
        self, tenant: Tenant, user_id: UUID, active: bool
    ) -> TenantUser:
        user = await self.session.scalar(
            select(TenantUser).where(
                TenantUser.id == user_id, TenantUser.tenant_id == tenant.id
            )
        )
        if user is None:
            raise NotFoundException("User not found", error_code="USER_NOT_FOUND")
        user.active = active
        user.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"Set active={active} on user {user_id}")
        return user

    async def _add_user(
        self, tenant: Tenant, uid: str, email: str, name: str, role: str
    ) -> TenantUser:
        existing = await self.session.scalar(
            select(TenantUser.id).where(
                TenantUser.tenant_id == tenant.id, TenantUser.uid == uid
            )
        )
        if existing is not None:
            raise ConflictException(
                "User already belongs to this tenant", error_code="USER_EXISTS"
            )
        user = TenantUser(
            tenant_id=tenant.id, uid=uid, email=email, name=name, role=role, active=True
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user


StaffServiceDependency = Annotated[StaffService, StaffService.get_dependency()]
