from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from geoverse.domain.entities.account import (
    AccountPreferences,
    AccountStatus,
    AuthProvider,
    NewIdentityLink,
    Theme,
)
from geoverse.domain.entities.credential import CredentialKind
from geoverse.domain.exceptions import AccountConflictError
from geoverse.infrastructure.db import maintenance
from geoverse.infrastructure.db.repositories.credential_store import SqlCredentialStore


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _link(link_id: str, subject: str, email: str, provider: AuthProvider = AuthProvider.GOOGLE) -> NewIdentityLink:
    return NewIdentityLink(
        id=link_id,
        provider=provider,
        provider_subject=subject,
        email=email,
        name="Alice",
        picture=None,
        verified=True,
    )


def _create(store: SqlCredentialStore, account_id: str = "acct-1", email: str = "a@x.com", subject: str = "g1"):
    return store.create_account(
        account_id=account_id,
        email=email,
        display_name="Alice",
        profile_picture=None,
        status=AccountStatus.ACTIVE,
        preferences=AccountPreferences(theme=Theme.DARK),
        initial_link=_link(f"link-{account_id}", subject, email),
        now=NOW,
    )


def _credential(store: SqlCredentialStore, credential_id: str, *, token_hash: str, expires_at: datetime):
    return store.create_credential(
        credential_id=credential_id,
        account_id="acct-1",
        kind=CredentialKind.REFRESH,
        token_hash=token_hash,
        issued_at=NOW,
        expires_at=expires_at,
        user_agent="pytest",
        ip="10.0.0.1",
    )


@pytest.fixture
def sql_store(sqlite_engine) -> SqlCredentialStore:
    return SqlCredentialStore(sqlite_engine)


def test_create_account_round_trips_through_sqlite(sql_store):
    account = _create(sql_store, email="  Alice@X.com ")

    loaded = sql_store.get_account_by_email(email="alice@x.com")

    assert loaded == account
    assert loaded.email == "alice@x.com"
    assert loaded.preferences.theme is Theme.DARK
    assert loaded.created_at == NOW
    assert loaded.created_at.tzinfo is not None
    link = sql_store.get_identity_link(provider=AuthProvider.GOOGLE, provider_subject="g1")
    assert link.account_id == account.id


def test_duplicate_email_conflicts_and_leaves_transaction_usable(sql_store):
    _create(sql_store)

    def _tx(store):
        with pytest.raises(AccountConflictError):
            _create(store, account_id="acct-2", email="a@x.com", subject="g2")
        return store.get_account_by_id(account_id="acct-1")

    assert sql_store.execute_in_transaction(_tx).id == "acct-1"
    assert sql_store.get_account_by_id(account_id="acct-2") is None


def test_second_link_for_same_provider_conflicts(sql_store):
    _create(sql_store)

    with pytest.raises(AccountConflictError):
        sql_store.create_identity_link(account_id="acct-1", link=_link("link-x", "g-other", "a@x.com"), now=NOW)

    github = sql_store.create_identity_link(
        account_id="acct-1",
        link=_link("link-gh", "gh-1", "a@x.com", provider=AuthProvider.GITHUB),
        now=NOW,
    )
    assert github.provider is AuthProvider.GITHUB
    assert len(sql_store.list_identity_links(account_id="acct-1")) == 2


def test_failed_transaction_rolls_back_every_write(sql_store):
    def _tx(store):
        _create(store)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        sql_store.execute_in_transaction(_tx)

    assert sql_store.get_account_by_id(account_id="acct-1") is None
    assert sql_store.get_identity_link(provider=AuthProvider.GOOGLE, provider_subject="g1") is None


def test_credentials_are_found_by_hash_and_revoked(sql_store):
    _create(sql_store)
    _credential(sql_store, "c1", token_hash="h1", expires_at=NOW + timedelta(days=7))
    _credential(sql_store, "c2", token_hash="h2", expires_at=NOW + timedelta(days=7))

    record = sql_store.get_credential_by_hash(token_hash="h1")
    assert record.kind is CredentialKind.REFRESH
    assert record.expires_at == NOW + timedelta(days=7)

    assert sql_store.delete_credential(account_id="acct-1", token_hash="h1") == 1
    assert sql_store.delete_credential(account_id="acct-1", token_hash="h1") == 0
    assert sql_store.delete_credentials_for_account(account_id="acct-1", kind=CredentialKind.REFRESH) == 1


def test_duplicate_token_hash_conflicts(sql_store):
    _create(sql_store)
    _credential(sql_store, "c1", token_hash="h1", expires_at=NOW + timedelta(days=7))

    with pytest.raises(AccountConflictError):
        _credential(sql_store, "c2", token_hash="h1", expires_at=NOW + timedelta(days=7))


def test_delete_expired_credentials(sql_store):
    _create(sql_store)
    _credential(sql_store, "old", token_hash="h-old", expires_at=NOW - timedelta(seconds=1))
    _credential(sql_store, "new", token_hash="h-new", expires_at=NOW + timedelta(days=1))

    assert sql_store.delete_expired_credentials(now=NOW) == 1
    assert sql_store.get_credential_by_hash(token_hash="h-new") is not None


def test_stats_and_record_listing(sql_store):
    _create(sql_store)
    for index, (city, country) in enumerate([("Lisbon", "PT"), ("Porto", "PT"), ("Lisbon", "PT")]):
        sql_store.create_record(
            record_id=f"r{index}",
            account_id="acct-1",
            city=city,
            country=country,
            recorded_at=NOW + timedelta(hours=index),
            payload={"temperature": 20 + index},
            now=NOW,
        )

    stats = sql_store.refresh_account_stats(account_id="acct-1", now=NOW)

    assert (stats.total_records, stats.total_cities, stats.total_countries) == (3, 2, 1)
    assert stats.last_record_at == NOW + timedelta(hours=2)
    assert sql_store.get_account_by_id(account_id="acct-1").stats == stats

    records = sql_store.list_records(account_id="acct-1", limit=2)
    assert [r.id for r in records] == ["r2", "r1"]
    assert records[0].payload == {"temperature": 22}


def test_favorites_and_filtered_listing(sql_store):
    _create(sql_store)
    places = [("Lisbon", "PT"), ("Porto", "PT"), ("Lisbon", "PT"), ("Madrid", "ES"), ("lisboa", "PT")]
    for index, (city, country) in enumerate(places):
        sql_store.create_record(
            record_id=f"r{index}",
            account_id="acct-1",
            city=city,
            country=country,
            recorded_at=NOW + timedelta(hours=index),
            payload={},
            now=NOW,
        )

    stats = sql_store.refresh_account_stats(account_id="acct-1", now=NOW)

    assert [(p.name, p.count) for p in stats.favorite_cities][0] == ("Lisbon", 2)
    assert [(p.name, p.count) for p in stats.favorite_countries] == [("PT", 4), ("ES", 1)]
    assert sql_store.get_account_by_id(account_id="acct-1").stats.favorite_countries == stats.favorite_countries

    by_city = sql_store.list_records(account_id="acct-1", limit=10, city="LISB")
    by_country = sql_store.list_records(account_id="acct-1", limit=10, country="es")
    paged = sql_store.list_records(account_id="acct-1", limit=2, offset=1)
    wildcard = sql_store.list_records(account_id="acct-1", limit=10, city="%")

    assert [r.id for r in by_city] == ["r4", "r2", "r0"]
    assert [r.id for r in by_country] == ["r3"]
    assert [r.id for r in paged] == ["r3", "r2"]
    assert wildcard == []


def test_delete_account_removes_dependents(sql_store):
    _create(sql_store)
    _credential(sql_store, "c1", token_hash="h1", expires_at=NOW + timedelta(days=7))
    sql_store.create_record(
        record_id="r1",
        account_id="acct-1",
        city="Lisbon",
        country="PT",
        recorded_at=NOW,
        payload={},
        now=NOW,
    )

    assert sql_store.delete_account(account_id="acct-1") is True
    assert sql_store.delete_account(account_id="acct-1") is False
    assert sql_store.get_credential_by_hash(token_hash="h1") is None
    assert sql_store.list_identity_links(account_id="acct-1") == []
    assert sql_store.list_records(account_id="acct-1", limit=10) == []


def test_update_profile_and_touch_activity(sql_store):
    _create(sql_store)
    later = NOW + timedelta(hours=1)

    updated = sql_store.update_account_profile(
        account_id="acct-1",
        display_name="Alice C",
        preferences=AccountPreferences(language="pt"),
        now=later,
    )
    sql_store.touch_account_activity(account_id="acct-1", now=later)

    assert updated.display_name == "Alice C"
    assert updated.preferences.language == "pt"
    assert sql_store.get_account_by_id(account_id="acct-1").last_active_at == later
    assert sql_store.update_account_profile(
        account_id="ghost", display_name="x", preferences=AccountPreferences(), now=later
    ) is None


def test_maintenance_purge_uses_token_service(sqlite_engine, jwt_codec):
    store = SqlCredentialStore(sqlite_engine)
    _create(store)
    _credential(store, "old", token_hash="h-old", expires_at=NOW - timedelta(days=1))

    assert maintenance.purge_expired(sqlite_engine, codec=jwt_codec, clock=lambda: NOW) == 1


def test_maintenance_cli_creates_schema(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'geoverse.db'}"

    result = CliRunner().invoke(maintenance.cli, ["--database-url", database_url, "create-schema"])

    assert result.exit_code == 0, result.output
    assert "schema ready" in result.output
