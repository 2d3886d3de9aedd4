from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.ports.records_port import RecordsPort
from geoverse.domain.entities.account import (
    Account,
    AccountPreferences,
    AccountStats,
    AccountStatus,
    AuthProvider,
    IdentityLink,
    NewIdentityLink,
    PlaceCount,
)
from geoverse.domain.entities.credential import CredentialKind, CredentialRecord
from geoverse.domain.entities.record import DataRecord
from geoverse.domain.exceptions import AccountConflictError, StoreUnavailableError
from geoverse.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_account,
    map_row_to_credential,
    map_row_to_data_record,
    map_row_to_identity_link,
    map_row_to_stats,
    places_to_json,
    preferences_to_json,
)
from geoverse.infrastructure.db.models.accounts import (
    AccountModel,
    CredentialRecordModel,
    DataRecordModel,
    IdentityLinkModel,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

FAVORITES_LIMIT = 5

accounts = AccountModel.__table__
identity_links = IdentityLinkModel.__table__
credential_records = CredentialRecordModel.__table__
data_records = DataRecordModel.__table__


class SqlCredentialStore(CredentialStorePort, RecordsPort):
    """SQLAlchemy Core store for accounts, identity links, credentials and records.

    Unbound, every call runs in its own transaction. ``execute_in_transaction``
    hands the callback a store bound to a single connection so that all of
    its calls commit or roll back together. Inserts guarded by unique
    constraints run inside a SAVEPOINT, so a conflict leaves the outer
    transaction usable.
    """

    def __init__(self, engine, conn: Connection | None = None):
        self._engine = engine
        self._conn = conn

    def execute_in_transaction(self, fn: Callable[[SqlCredentialStore], T]) -> T:
        if self._conn is not None:
            return fn(self)
        with self._connection() as conn:
            return fn(SqlCredentialStore(self._engine, conn=conn))

    def ping(self) -> None:
        with self._connection() as conn:
            conn.execute(select(1))

    # accounts

    def get_account_by_id(self, *, account_id: str) -> Account | None:
        with self._connection() as conn:
            row = conn.execute(select(accounts).where(accounts.c.id == account_id)).mappings().first()
        if row is None:
            return None
        return map_row_to_account(row)

    def get_account_by_email(self, *, email: str) -> Account | None:
        with self._connection() as conn:
            row = conn.execute(
                select(accounts).where(accounts.c.email == email.strip().lower())
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_account(row)

    def create_account(
        self,
        *,
        account_id: str,
        email: str,
        display_name: str,
        profile_picture: str | None,
        status: AccountStatus,
        preferences: AccountPreferences,
        initial_link: NewIdentityLink,
        now: datetime,
    ) -> Account:
        with self._unique_write() as conn:
            conn.execute(
                insert(accounts).values(
                    id=account_id,
                    email=email.strip().lower(),
                    display_name=display_name,
                    profile_picture=profile_picture,
                    status=status.value,
                    preferences=preferences_to_json(preferences),
                    total_records=0,
                    total_cities=0,
                    total_countries=0,
                    favorite_cities=[],
                    favorite_countries=[],
                    last_record_at=None,
                    created_at=now,
                    updated_at=now,
                    last_active_at=now,
                )
            )
            conn.execute(insert(identity_links).values(**_link_values(account_id, initial_link, now)))
            row = conn.execute(select(accounts).where(accounts.c.id == account_id)).mappings().one()
        return map_row_to_account(row)

    def update_account_profile(
        self,
        *,
        account_id: str,
        display_name: str,
        preferences: AccountPreferences,
        now: datetime,
    ) -> Account | None:
        with self._connection() as conn:
            result = conn.execute(
                update(accounts)
                .where(accounts.c.id == account_id)
                .values(
                    display_name=display_name,
                    preferences=preferences_to_json(preferences),
                    updated_at=now,
                )
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(select(accounts).where(accounts.c.id == account_id)).mappings().one()
        return map_row_to_account(row)

    def touch_account_activity(self, *, account_id: str, now: datetime) -> None:
        with self._connection() as conn:
            conn.execute(update(accounts).where(accounts.c.id == account_id).values(last_active_at=now))

    def delete_account(self, *, account_id: str) -> bool:
        with self._connection() as conn:
            conn.execute(delete(data_records).where(data_records.c.account_id == account_id))
            conn.execute(delete(credential_records).where(credential_records.c.account_id == account_id))
            conn.execute(delete(identity_links).where(identity_links.c.account_id == account_id))
            result = conn.execute(delete(accounts).where(accounts.c.id == account_id))
        return result.rowcount > 0

    # identity links

    def get_identity_link(self, *, provider: AuthProvider, provider_subject: str) -> IdentityLink | None:
        stmt = select(identity_links).where(
            identity_links.c.provider == provider.value,
            identity_links.c.provider_subject == provider_subject,
        )
        with self._connection() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_identity_link(row)

    def get_identity_link_for_account(
        self,
        *,
        account_id: str,
        provider: AuthProvider,
    ) -> IdentityLink | None:
        stmt = select(identity_links).where(
            identity_links.c.account_id == account_id,
            identity_links.c.provider == provider.value,
        )
        with self._connection() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return map_row_to_identity_link(row)

    def list_identity_links(self, *, account_id: str) -> list[IdentityLink]:
        stmt = (
            select(identity_links)
            .where(identity_links.c.account_id == account_id)
            .order_by(identity_links.c.created_at)
        )
        with self._connection() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [map_row_to_identity_link(row) for row in rows]

    def create_identity_link(
        self,
        *,
        account_id: str,
        link: NewIdentityLink,
        now: datetime,
    ) -> IdentityLink:
        with self._unique_write() as conn:
            conn.execute(insert(identity_links).values(**_link_values(account_id, link, now)))
            row = conn.execute(select(identity_links).where(identity_links.c.id == link.id)).mappings().one()
        return map_row_to_identity_link(row)

    def record_identity_login(self, *, link_id: str, now: datetime) -> None:
        with self._connection() as conn:
            conn.execute(update(identity_links).where(identity_links.c.id == link_id).values(last_login_at=now))

    def update_identity_link_subject(
        self,
        *,
        link_id: str,
        provider_subject: str,
        email: str,
        name: str,
        picture: str | None,
        verified: bool,
        now: datetime,
    ) -> None:
        with self._unique_write() as conn:
            conn.execute(
                update(identity_links)
                .where(identity_links.c.id == link_id)
                .values(
                    provider_subject=provider_subject,
                    email=email,
                    name=name,
                    picture=picture,
                    verified=verified,
                    last_login_at=now,
                )
            )

    # credentials

    def create_credential(
        self,
        *,
        credential_id: str,
        account_id: str,
        kind: CredentialKind,
        token_hash: str,
        issued_at: datetime,
        expires_at: datetime,
        user_agent: str | None,
        ip: str | None,
    ) -> CredentialRecord:
        values = {
            "id": credential_id,
            "account_id": account_id,
            "kind": kind.value,
            "token_hash": token_hash,
            "issued_at": issued_at,
            "expires_at": expires_at,
            "user_agent": user_agent,
            "ip": ip,
        }
        with self._unique_write() as conn:
            conn.execute(insert(credential_records).values(**values))
        return map_row_to_credential(values)

    def get_credential_by_hash(self, *, token_hash: str) -> CredentialRecord | None:
        with self._connection() as conn:
            row = conn.execute(
                select(credential_records).where(credential_records.c.token_hash == token_hash)
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_credential(row)

    def delete_credential(self, *, account_id: str, token_hash: str) -> int:
        stmt = delete(credential_records).where(
            credential_records.c.account_id == account_id,
            credential_records.c.token_hash == token_hash,
        )
        with self._connection() as conn:
            result = conn.execute(stmt)
        return result.rowcount

    def delete_credentials_for_account(self, *, account_id: str, kind: CredentialKind) -> int:
        stmt = delete(credential_records).where(
            credential_records.c.account_id == account_id,
            credential_records.c.kind == kind.value,
        )
        with self._connection() as conn:
            result = conn.execute(stmt)
        return result.rowcount

    def delete_expired_credentials(self, *, now: datetime) -> int:
        with self._connection() as conn:
            result = conn.execute(delete(credential_records).where(credential_records.c.expires_at <= now))
        return result.rowcount

    # records

    def create_record(
        self,
        *,
        record_id: str,
        account_id: str,
        city: str,
        country: str,
        recorded_at: datetime,
        payload: dict[str, Any],
        now: datetime,
    ) -> DataRecord:
        with self._connection() as conn:
            conn.execute(
                insert(data_records).values(
                    id=record_id,
                    account_id=account_id,
                    city=city,
                    country=country,
                    recorded_at=recorded_at,
                    payload=payload,
                    created_at=now,
                )
            )
            row = conn.execute(select(data_records).where(data_records.c.id == record_id)).mappings().one()
        return map_row_to_data_record(row)

    def refresh_account_stats(self, *, account_id: str, now: datetime) -> AccountStats:
        totals = select(
            func.count(data_records.c.id).label("total_records"),
            func.count(func.distinct(data_records.c.city)).label("total_cities"),
            func.count(func.distinct(data_records.c.country)).label("total_countries"),
            func.max(data_records.c.recorded_at).label("last_record_at"),
        ).where(data_records.c.account_id == account_id)
        with self._connection() as conn:
            row = conn.execute(totals).mappings().one()
            favorite_cities = _favorites(conn, account_id, data_records.c.city)
            favorite_countries = _favorites(conn, account_id, data_records.c.country)
            stats = replace(
                map_row_to_stats(row),
                favorite_cities=favorite_cities,
                favorite_countries=favorite_countries,
            )
            conn.execute(
                update(accounts)
                .where(accounts.c.id == account_id)
                .values(
                    total_records=stats.total_records,
                    total_cities=stats.total_cities,
                    total_countries=stats.total_countries,
                    last_record_at=stats.last_record_at,
                    favorite_cities=places_to_json(favorite_cities),
                    favorite_countries=places_to_json(favorite_countries),
                    updated_at=now,
                )
            )
        return stats

    def list_records(
        self,
        *,
        account_id: str,
        limit: int,
        offset: int = 0,
        city: str | None = None,
        country: str | None = None,
    ) -> list[DataRecord]:
        stmt = select(data_records).where(data_records.c.account_id == account_id)
        # case-insensitive substring match
        if city:
            stmt = stmt.where(func.lower(data_records.c.city).contains(city.lower(), autoescape=True))
        if country:
            stmt = stmt.where(func.lower(data_records.c.country).contains(country.lower(), autoescape=True))
        stmt = (
            stmt.order_by(data_records.c.recorded_at.desc(), data_records.c.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        with self._connection() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [map_row_to_data_record(row) for row in rows]

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        try:
            if self._conn is not None:
                yield self._conn
            else:
                with self._engine.begin() as conn:
                    yield conn
        except (OperationalError, InterfaceError) as exc:
            logger.error("credential_store: unavailable error=%s", exc.__class__.__name__)
            raise StoreUnavailableError() from exc

    @contextmanager
    def _unique_write(self) -> Iterator[Connection]:
        with self._connection() as conn:
            try:
                with conn.begin_nested():
                    yield conn
            except IntegrityError as exc:
                raise AccountConflictError() from exc


def _link_values(account_id: str, link: NewIdentityLink, now: datetime) -> dict:
    return {
        "id": link.id,
        "account_id": account_id,
        "provider": link.provider.value,
        "provider_subject": link.provider_subject,
        "email": link.email,
        "name": link.name,
        "picture": link.picture,
        "verified": link.verified,
        "password_hash": None,
        "last_login_at": now,
        "created_at": now,
    }


def _favorites(conn: Connection, account_id: str, column) -> tuple[PlaceCount, ...]:
    hits = func.count(data_records.c.id).label("hits")
    stmt = (
        select(column.label("name"), hits)
        .where(data_records.c.account_id == account_id)
        .group_by(column)
        .order_by(hits.desc(), column)
        .limit(FAVORITES_LIMIT)
    )
    rows = conn.execute(stmt).mappings().all()
    return tuple(PlaceCount(name=row["name"], count=int(row["hits"])) for row in rows)
