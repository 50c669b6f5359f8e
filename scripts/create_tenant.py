# scripts/create_tenant.py
"""
Onboard a tenant.
Usage: python scripts.py create_tenant --slug acme --name "Acme Valet" [--key-storage-mode slots --slots 40]
"""

from apps.api.tenant.models import DEFAULT_SLOTS_COUNT, KeyStorageMode
from apps.api.tenant.service import TenantService
from core.db.core import get_session
from core.db.registry import load_models
from core.exceptions import AppException
from core.utils.commands.command import BaseCommand


class Command(BaseCommand):
    help = "Create a tenant and reserve its slug"

    def add_arguments(self, parser):
        parser.add_argument("--slug", required=True)
        parser.add_argument("--name", required=True)
        parser.add_argument("--country", default=None)
        parser.add_argument("--currency", default=None)
        parser.add_argument(
            "--key-storage-mode",
            default=KeyStorageMode.OFF.value,
            choices=[mode.value for mode in KeyStorageMode],
        )
        parser.add_argument("--slots", type=int, default=DEFAULT_SLOTS_COUNT)

    async def handle(self, **options):
        load_models()
        async with get_session() as session:
            try:
                tenant = await TenantService(session=session).create_tenant(
                    slug=options["slug"],
                    name=options["name"],
                    country=options["country"],
                    currency=options["currency"],
                    key_storage_mode=options["key_storage_mode"],
                    key_storage_slots_count=options["slots"],
                )
            except AppException as e:
                print(f"❌ {e.message}")
                raise SystemExit(1)

        print(f"✅ Created tenant '{tenant.name}' at /j/{tenant.slug}")
        print(f"   Tenant ID: {tenant.id}")
        print(f"   Next: POST /api/j/{tenant.slug}/staff/first-admin to create the first admin")
