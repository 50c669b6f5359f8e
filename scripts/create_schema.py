# scripts/create_schema.py
"""
Create every table directly from the models. Development only; use
``alembic upgrade head`` for real databases.
Usage: python scripts.py create_schema [--drop]
"""

from core.db.base import Base
from core.db.core import engine
from core.db.registry import load_models
from core.utils.commands.command import BaseCommand


class Command(BaseCommand):
    help = "Create all tables from the SQLAlchemy models"

    def add_arguments(self, parser):
        parser.add_argument("--drop", action="store_true", help="Drop existing tables first")

    async def handle(self, **options):
        load_models()
        async with engine.begin() as conn:
            if options["drop"]:
                await conn.run_sync(Base.metadata.drop_all)
                print("🗑️  Dropped existing tables")
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
        print(f"✅ Created {len(Base.metadata.tables)} tables")
