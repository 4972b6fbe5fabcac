# marketplace/cli/purge_attempts.py
import asyncio
import click

from marketplace.database import build_engine, build_session_factory
from marketplace.services.attempt_ledger import AttemptLedger


@click.command()
def purge_attempts():
    """Delete checkout attempts that are past their TTL"""
    from marketplace.core.config import get_settings
    settings = get_settings()

    async def _purge():
        engine = build_engine(settings.DATABASE_URL)
        try:
            ledger = AttemptLedger(
                build_session_factory(engine),
                ttl_seconds=settings.CHECKOUT_ATTEMPT_TTL_SECONDS,
            )
            return await ledger.purge_expired()
        finally:
            await engine.dispose()

    deleted = asyncio.run(_purge())
    click.echo(f"Purged {deleted} expired checkout attempts")


if __name__ == "__main__":
    purge_attempts()
