from __future__ import annotations

from datetime import datetime, timezone

from geoverse.application.dto.account import AccountSummaryOutput, LinkedProviderOutput
from geoverse.domain.entities.account import Account, IdentityLink


DISPLAY_NAME_MIN = 2
DISPLAY_NAME_MAX = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_account_summary(
    account: Account,
    *,
    now: datetime,
    links: list[IdentityLink] | None = None,
) -> AccountSummaryOutput:
    account_age_days = max((now - account.created_at).days, 0)
    return AccountSummaryOutput(
        id=account.id,
        email=account.email,
        display_name=account.display_name,
        profile_picture=account.profile_picture,
        status=account.status.value,
        preferences=account.preferences,
        stats=account.stats,
        account_age_days=account_age_days,
        last_active_at=account.last_active_at,
        providers=tuple(
            LinkedProviderOutput(
                provider=link.provider.value,
                email=link.email,
                verified=link.verified,
                last_login_at=link.last_login_at,
            )
            for link in links or []
        ),
    )
