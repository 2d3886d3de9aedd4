"""Out-of-band database chores.

    python -m geoverse.infrastructure.db.maintenance create-schema
    python -m geoverse.infrastructure.db.maintenance purge-expired
"""
from __future__ import annotations

import logging

import click

from geoverse.application.services.token_service import TokenService
from geoverse.application.use_cases.auth_common import utcnow
from geoverse.infrastructure.db.engine import Base, get_engine
from geoverse.infrastructure.db.models import accounts as _models  # noqa: F401  registers tables
from geoverse.infrastructure.db.repositories.credential_store import SqlCredentialStore
from geoverse.infrastructure.security.jwt_token_codec import JwtTokenCodec
from geoverse.shared.config import get_settings
from geoverse.shared.logging import configure_logging


logger = logging.getLogger(__name__)


def create_schema(engine) -> None:
    Base.metadata.create_all(engine)
    logger.info("maintenance: schema_created tables=%s", len(Base.metadata.tables))


def purge_expired(engine, *, codec, clock=utcnow) -> int:
    service = TokenService(codec=codec, store=SqlCredentialStore(engine), clock=clock)
    return service.purge_expired()


@click.group()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Overrides DATABASE_URL.")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    dsn = database_url or settings.database_url
    if not dsn:
        raise click.UsageError("DATABASE_URL is not configured.")
    ctx.obj = {"engine": get_engine(dsn), "settings": settings}


@cli.command("create-schema")
@click.pass_obj
def create_schema_command(obj: dict) -> None:
    create_schema(obj["engine"])
    click.echo("schema ready")


@cli.command("purge-expired")
@click.pass_obj
def purge_expired_command(obj: dict) -> None:
    codec = JwtTokenCodec.from_settings(obj["settings"])
    purged = purge_expired(obj["engine"], codec=codec)
    click.echo(f"purged {purged} expired credential(s)")


if __name__ == "__main__":
    cli()
