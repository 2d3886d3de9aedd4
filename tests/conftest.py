from __future__ import annotations

import copy
from collections import Counter
import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from geoverse.application.dto.auth import AccessClaims, ExternalIdentity  # noqa: E402
from geoverse.domain.entities.account import (  # noqa: E402
    Account,
    AccountPreferences,
    AccountStats,
    AccountStatus,
    AuthProvider,
    IdentityLink,
    NewIdentityLink,
    PlaceCount,
)
from geoverse.domain.entities.credential import CredentialKind, CredentialRecord  # noqa: E402
from geoverse.domain.entities.record import DataRecord  # noqa: E402
from geoverse.domain.exceptions import (  # noqa: E402
    AccountConflictError,
    ExternalAuthError,
    InvalidCredentialError,
    InvalidRefreshTokenError,
    RefreshTokenExpiredError,
    TokenExpiredError,
)
from geoverse.infrastructure.db.engine import Base, get_engine  # noqa: E402
from geoverse.infrastructure.db.models import accounts as _models  # noqa: E402,F401
from geoverse.infrastructure.security.jwt_token_codec import JwtTokenCodec  # noqa: E402


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _top_places(names, limit: int = 5) -> tuple[PlaceCount, ...]:
    counts = Counter(names)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(PlaceCount(name=name, count=count) for name, count in ranked[:limit])


class FakeCredentialStore:
    """In-memory store with the same uniqueness rules as the SQL schema."""

    def __init__(self):
        self.accounts: dict[str, Account] = {}
        self.links: dict[str, IdentityLink] = {}
        self.credentials: dict[str, CredentialRecord] = {}
        self.records: dict[str, DataRecord] = {}
        self.transactions = 0

    def execute_in_transaction(self, fn):
        snapshot = copy.deepcopy((self.accounts, self.links, self.credentials, self.records))
        self.transactions += 1
        try:
            return fn(self)
        except Exception:
            self.accounts, self.links, self.credentials, self.records = snapshot
            raise

    def get_account_by_id(self, *, account_id):
        return self.accounts.get(account_id)

    def get_account_by_email(self, *, email):
        email = email.strip().lower()
        for account in self.accounts.values():
            if account.email == email:
                return account
        return None

    def create_account(
        self,
        *,
        account_id,
        email,
        display_name,
        profile_picture,
        status,
        preferences,
        initial_link,
        now,
    ):
        email = email.strip().lower()
        if self.get_account_by_email(email=email) is not None:
            raise AccountConflictError()
        if self.get_identity_link(provider=initial_link.provider, provider_subject=initial_link.provider_subject):
            raise AccountConflictError()
        account = Account(
            id=account_id,
            email=email,
            display_name=display_name,
            profile_picture=profile_picture,
            status=status,
            preferences=preferences,
            stats=AccountStats(),
            created_at=now,
            updated_at=now,
            last_active_at=now,
        )
        self.accounts[account.id] = account
        self.create_identity_link(account_id=account.id, link=initial_link, now=now)
        return account

    def update_account_profile(self, *, account_id, display_name, preferences, now):
        account = self.accounts.get(account_id)
        if account is None:
            return None
        account = replace(account, display_name=display_name, preferences=preferences, updated_at=now)
        self.accounts[account_id] = account
        return account

    def touch_account_activity(self, *, account_id, now):
        account = self.accounts.get(account_id)
        if account is not None:
            self.accounts[account_id] = replace(account, last_active_at=now)

    def delete_account(self, *, account_id):
        if account_id not in self.accounts:
            return False
        del self.accounts[account_id]
        self.links = {k: v for k, v in self.links.items() if v.account_id != account_id}
        self.credentials = {k: v for k, v in self.credentials.items() if v.account_id != account_id}
        self.records = {k: v for k, v in self.records.items() if v.account_id != account_id}
        return True

    def get_identity_link(self, *, provider, provider_subject):
        for link in self.links.values():
            if link.provider == provider and link.provider_subject == provider_subject:
                return link
        return None

    def get_identity_link_for_account(self, *, account_id, provider):
        for link in self.links.values():
            if link.account_id == account_id and link.provider == provider:
                return link
        return None

    def list_identity_links(self, *, account_id):
        return [link for link in self.links.values() if link.account_id == account_id]

    def create_identity_link(self, *, account_id, link, now):
        if self.get_identity_link(provider=link.provider, provider_subject=link.provider_subject):
            raise AccountConflictError()
        if self.get_identity_link_for_account(account_id=account_id, provider=link.provider):
            raise AccountConflictError()
        created = IdentityLink(
            id=link.id,
            account_id=account_id,
            provider=link.provider,
            provider_subject=link.provider_subject,
            email=link.email,
            name=link.name,
            picture=link.picture,
            verified=link.verified,
            last_login_at=now,
            created_at=now,
        )
        self.links[created.id] = created
        return created

    def record_identity_login(self, *, link_id, now):
        self.links[link_id] = replace(self.links[link_id], last_login_at=now)

    def update_identity_link_subject(self, *, link_id, provider_subject, email, name, picture, verified, now):
        self.links[link_id] = replace(
            self.links[link_id],
            provider_subject=provider_subject,
            email=email,
            name=name,
            picture=picture,
            verified=verified,
            last_login_at=now,
        )

    def create_credential(
        self,
        *,
        credential_id,
        account_id,
        kind,
        token_hash,
        issued_at,
        expires_at,
        user_agent,
        ip,
    ):
        if self.get_credential_by_hash(token_hash=token_hash) is not None:
            raise AccountConflictError()
        record = CredentialRecord(
            id=credential_id,
            account_id=account_id,
            kind=kind,
            token_hash=token_hash,
            issued_at=issued_at,
            expires_at=expires_at,
            user_agent=user_agent,
            ip=ip,
        )
        self.credentials[record.id] = record
        return record

    def get_credential_by_hash(self, *, token_hash):
        for record in self.credentials.values():
            if record.token_hash == token_hash:
                return record
        return None

    def delete_credential(self, *, account_id, token_hash):
        doomed = [
            k for k, v in self.credentials.items() if v.account_id == account_id and v.token_hash == token_hash
        ]
        for key in doomed:
            del self.credentials[key]
        return len(doomed)

    def delete_credentials_for_account(self, *, account_id, kind):
        doomed = [k for k, v in self.credentials.items() if v.account_id == account_id and v.kind == kind]
        for key in doomed:
            del self.credentials[key]
        return len(doomed)

    def delete_expired_credentials(self, *, now):
        doomed = [k for k, v in self.credentials.items() if v.expires_at <= now]
        for key in doomed:
            del self.credentials[key]
        return len(doomed)

    def create_record(self, *, record_id, account_id, city, country, recorded_at, payload, now):
        record = DataRecord(
            id=record_id,
            account_id=account_id,
            city=city,
            country=country,
            recorded_at=recorded_at,
            payload=payload,
            created_at=now,
        )
        self.records[record.id] = record
        return record

    def refresh_account_stats(self, *, account_id, now):
        owned = [r for r in self.records.values() if r.account_id == account_id]
        stats = AccountStats(
            total_records=len(owned),
            total_cities=len({r.city for r in owned}),
            total_countries=len({r.country for r in owned}),
            last_record_at=max((r.recorded_at for r in owned), default=None),
            favorite_cities=_top_places(r.city for r in owned),
            favorite_countries=_top_places(r.country for r in owned),
        )
        account = self.accounts.get(account_id)
        if account is not None:
            self.accounts[account_id] = replace(account, stats=stats, updated_at=now)
        return stats

    def list_records(self, *, account_id, limit, offset=0, city=None, country=None):
        owned = [
            r
            for r in self.records.values()
            if r.account_id == account_id
            and (city is None or city.lower() in r.city.lower())
            and (country is None or country.lower() in r.country.lower())
        ]
        owned.sort(key=lambda r: (r.recorded_at, r.created_at), reverse=True)
        return owned[offset : offset + limit]

    # helpers for tests

    def add_account(self, account_id: str = "acct-1", *, email: str = "a@x.com", status=AccountStatus.ACTIVE, now=T0):
        return self.create_account(
            account_id=account_id,
            email=email,
            display_name="Alice",
            profile_picture=None,
            status=status,
            preferences=AccountPreferences(),
            initial_link=NewIdentityLink(
                id=f"link-{account_id}",
                provider=AuthProvider.GOOGLE,
                provider_subject=f"sub-{account_id}",
                email=email,
                name="Alice",
                picture=None,
                verified=True,
            ),
            now=now,
        )


class FakeTokenCodec:
    """Opaque ``<kind>-<n>`` tokens remembered in a dict instead of signed."""

    def __init__(self, *, access_ttl=timedelta(minutes=15), refresh_ttl=timedelta(days=7)):
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._issued: dict[str, tuple[CredentialKind, str, datetime, datetime]] = {}

    def encode_access_token(self, *, account_id, now):
        return self._encode(CredentialKind.ACCESS, account_id, now, self._access_ttl)

    def encode_refresh_token(self, *, account_id, now):
        return self._encode(CredentialKind.REFRESH, account_id, now, self._refresh_ttl)

    def decode_access_token(self, *, token, now):
        claims = self._decode(token, CredentialKind.ACCESS, InvalidCredentialError)
        if claims.expires_at <= now:
            raise TokenExpiredError()
        return claims

    def decode_refresh_token(self, *, token, now):
        claims = self._decode(token, CredentialKind.REFRESH, InvalidRefreshTokenError)
        if claims.expires_at <= now:
            raise RefreshTokenExpiredError()
        return claims

    def hash_token(self, *, token):
        return f"hash:{token}"

    def _encode(self, kind, account_id, now, ttl):
        token = f"{kind.value}-{len(self._issued) + 1}"
        self._issued[token] = (kind, account_id, now, now + ttl)
        return token, now + ttl

    def _decode(self, token, kind, error_cls):
        entry = self._issued.get(token)
        if entry is None or entry[0] is not kind:
            raise error_cls()
        _, account_id, issued_at, expires_at = entry
        return AccessClaims(account_id=account_id, issued_at=issued_at, expires_at=expires_at, token_id=token)


class FakeIdentityProvider:
    def __init__(self, identities: dict[str, ExternalIdentity] | None = None):
        self.identities = dict(identities or {})

    def authorization_url(self, *, state):
        return f"https://accounts.example.test/auth?state={state}"

    def exchange_code(self, *, code):
        return self.verify_id_token(id_token=code)

    def verify_id_token(self, *, id_token):
        identity = self.identities.get(id_token)
        if identity is None:
            raise ExternalAuthError("Invalid Google id_token.")
        return identity


def google_identity(subject: str = "g1", email: str = "a@x.com", name: str | None = "Alice") -> ExternalIdentity:
    return ExternalIdentity(
        provider=AuthProvider.GOOGLE,
        subject=subject,
        email=email,
        email_verified=True,
        name=name,
        picture=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def fake_codec() -> FakeTokenCodec:
    return FakeTokenCodec()


@pytest.fixture
def jwt_codec() -> JwtTokenCodec:
    return JwtTokenCodec(
        access_secret="test-access-secret",
        refresh_secret="test-refresh-secret",
        issuer="geoverse",
        access_ttl_minutes=15,
        refresh_ttl_days=7,
    )


@pytest.fixture
def identity_factory():
    return google_identity


@pytest.fixture
def sqlite_engine():
    engine = get_engine.__wrapped__("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider({"google-token": google_identity()})
