from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from geoverse.domain.entities.account import AccountPreferences, AccountStats
from geoverse.domain.entities.record import DataRecord


@dataclass(frozen=True)
class LinkedProviderOutput:
    provider: str
    email: str
    verified: bool
    last_login_at: datetime


@dataclass(frozen=True)
class AccountSummaryOutput:
    id: str
    email: str
    display_name: str
    profile_picture: str | None
    status: str
    preferences: AccountPreferences
    stats: AccountStats
    account_age_days: int
    last_active_at: datetime
    providers: tuple[LinkedProviderOutput, ...] = ()


@dataclass(frozen=True)
class MeOutput:
    account: AccountSummaryOutput
    recent_records: tuple[DataRecord, ...]


@dataclass(frozen=True)
class PreferencesPatch:
    theme: str | None = None
    language: str | None = None
    temperature_unit: str | None = None
    wind_unit: str | None = None
    pressure_unit: str | None = None
    notify_email: bool | None = None
    notify_push: bool | None = None
    profile_public: bool | None = None


@dataclass(frozen=True)
class UpdateProfileInput:
    account_id: str
    display_name: str | None
    preferences: PreferencesPatch | None


@dataclass(frozen=True)
class DeleteAccountInput:
    account_id: str
    confirmation: str | None
