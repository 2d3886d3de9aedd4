from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import uuid4

from geoverse.application.dto.auth import ExternalIdentity, ResolvedAccount
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.application.use_cases.auth_common import DISPLAY_NAME_MAX, normalize_email, utcnow
from geoverse.domain.entities.account import (
    Account,
    AccountPreferences,
    AccountStatus,
    NewIdentityLink,
)
from geoverse.domain.exceptions import AccountConflictError, AccountNotFoundError, InputValidationError


logger = logging.getLogger(__name__)


class IdentityResolver:
    """Maps a verified external identity to exactly one local account.

    Lookup order is provider subject first, then email, then creation. A
    provider-side email change therefore never severs an existing binding.
    When a concurrent login wins the insert race the store raises
    ``AccountConflictError``; the lookups are re-run once and converge on the
    winner's account.
    """

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._clock = clock

    def bind(self, store: CredentialStorePort) -> IdentityResolver:
        return IdentityResolver(store=store, clock=self._clock)

    def resolve(self, identity: ExternalIdentity) -> ResolvedAccount:
        email = normalize_email(identity.email)
        if not email or not identity.subject:
            raise InputValidationError("Identity assertion must carry a subject and an email.")

        try:
            return self._resolve_once(identity, email=email)
        except AccountConflictError:
            logger.info(
                "identity_resolver: conflict provider=%s email=%s, re-resolving",
                identity.provider.value,
                email,
            )
            return self._resolve_once(identity, email=email)

    def _resolve_once(self, identity: ExternalIdentity, *, email: str) -> ResolvedAccount:
        now = self._clock()

        link = self._store.get_identity_link(
            provider=identity.provider,
            provider_subject=identity.subject,
        )
        if link is not None:
            account = self._store.get_account_by_id(account_id=link.account_id)
            if account is None:
                raise AccountNotFoundError("Account linked to identity was not found.")
            self._store.record_identity_login(link_id=link.id, now=now)
            logger.info(
                "identity_resolver: login account_id=%s provider=%s",
                account.id,
                identity.provider.value,
            )
            return ResolvedAccount(account=account, is_new_account=False)

        account = self._store.get_account_by_email(email=email)
        if account is not None:
            self._link(account, identity, email=email, now=now)
            return ResolvedAccount(account=account, is_new_account=False)

        account = self._store.create_account(
            account_id=str(uuid4()),
            email=email,
            display_name=_display_name(identity, email),
            profile_picture=identity.picture,
            status=AccountStatus.ACTIVE,
            preferences=AccountPreferences(),
            initial_link=_new_link(identity, email),
            now=now,
        )
        logger.info(
            "identity_resolver: account_created account_id=%s provider=%s",
            account.id,
            identity.provider.value,
        )
        return ResolvedAccount(account=account, is_new_account=True)

    def _link(self, account: Account, identity: ExternalIdentity, *, email: str, now: datetime) -> None:
        existing = self._store.get_identity_link_for_account(
            account_id=account.id,
            provider=identity.provider,
        )
        if existing is None:
            self._store.create_identity_link(
                account_id=account.id,
                link=_new_link(identity, email),
                now=now,
            )
            logger.info(
                "identity_resolver: account_linked account_id=%s provider=%s",
                account.id,
                identity.provider.value,
            )
            return

        # one link per provider: the provider now vouches a different subject for this email
        self._store.update_identity_link_subject(
            link_id=existing.id,
            provider_subject=identity.subject,
            email=email,
            name=_display_name(identity, email),
            picture=identity.picture,
            verified=identity.email_verified,
            now=now,
        )
        logger.warning(
            "identity_resolver: link_subject_replaced account_id=%s provider=%s",
            account.id,
            identity.provider.value,
        )


def _display_name(identity: ExternalIdentity, email: str) -> str:
    name = identity.name.strip() if identity.name else ""
    return (name or email.split("@")[0])[:DISPLAY_NAME_MAX].rstrip()


def _new_link(identity: ExternalIdentity, email: str) -> NewIdentityLink:
    return NewIdentityLink(
        id=str(uuid4()),
        provider=identity.provider,
        provider_subject=identity.subject,
        email=email,
        name=_display_name(identity, email),
        picture=identity.picture,
        verified=identity.email_verified,
    )
