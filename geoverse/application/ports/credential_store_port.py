from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from geoverse.domain.entities.account import (
    Account,
    AccountPreferences,
    AccountStatus,
    AuthProvider,
    IdentityLink,
    NewIdentityLink,
)
from geoverse.domain.entities.credential import CredentialKind, CredentialRecord


TStoreResult = TypeVar("TStoreResult")


class CredentialStorePort(Protocol):
    """Accounts, identity links and refresh credentials.

    Mutations that would break a uniqueness constraint (account email,
    provider subject, one link per provider per account) raise
    ``AccountConflictError`` and leave any surrounding transaction usable.
    """

    def execute_in_transaction(self, fn: Callable[[CredentialStorePort], TStoreResult]) -> TStoreResult:
        ...

    def get_account_by_id(self, *, account_id: str) -> Account | None:
        ...

    def get_account_by_email(self, *, email: str) -> Account | None:
        ...

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
        """Insert the account and its first identity link as one unit."""
        ...

    def update_account_profile(
        self,
        *,
        account_id: str,
        display_name: str,
        preferences: AccountPreferences,
        now: datetime,
    ) -> Account | None:
        ...

    def touch_account_activity(self, *, account_id: str, now: datetime) -> None:
        ...

    def delete_account(self, *, account_id: str) -> bool:
        ...

    def get_identity_link(self, *, provider: AuthProvider, provider_subject: str) -> IdentityLink | None:
        ...

    def get_identity_link_for_account(
        self,
        *,
        account_id: str,
        provider: AuthProvider,
    ) -> IdentityLink | None:
        ...

    def list_identity_links(self, *, account_id: str) -> list[IdentityLink]:
        ...

    def create_identity_link(
        self,
        *,
        account_id: str,
        link: NewIdentityLink,
        now: datetime,
    ) -> IdentityLink:
        ...

    def record_identity_login(self, *, link_id: str, now: datetime) -> None:
        ...

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
        ...

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
        ...

    def get_credential_by_hash(self, *, token_hash: str) -> CredentialRecord | None:
        ...

    def delete_credential(self, *, account_id: str, token_hash: str) -> int:
        ...

    def delete_credentials_for_account(self, *, account_id: str, kind: CredentialKind) -> int:
        ...

    def delete_expired_credentials(self, *, now: datetime) -> int:
        ...
