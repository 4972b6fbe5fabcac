# marketplace/cli/create_tables.py
import asyncio
import click

from marketplace.database import Base, build_engine

# Import all models to ensure they're registered with the Base
from marketplace import models  # noqa: F401


@click.command()
@click.option("--drop", is_flag=True, help="Drop every table before creating it again")
def create_tables(drop):
    """Create all database tables directly using SQLAlchemy"""
    from marketplace.core.config import get_settings
    settings = get_settings()

    async def _create_tables():
        engine = build_engine(settings.DATABASE_URL)
        try:
            async with engine.begin() as conn:
                if drop:
                    await conn.run_sync(Base.metadata.drop_all)
                    click.echo("Dropped existing tables")
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()
        click.echo(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
