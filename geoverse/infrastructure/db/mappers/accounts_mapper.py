from __future__ import annotations

from typing import Any, Mapping

from geoverse.domain.entities.account import (
    Account,
    AccountPreferences,
    AccountStats,
    AccountStatus,
    AuthProvider,
    IdentityLink,
    PlaceCount,
    PressureUnit,
    TemperatureUnit,
    Theme,
    WindUnit,
)
from geoverse.domain.entities.credential import CredentialKind, CredentialRecord
from geoverse.domain.entities.record import DataRecord


def _as_str(value: Any) -> str:
    return str(value)


def preferences_to_json(preferences: AccountPreferences) -> dict:
    return {
        "theme": preferences.theme.value,
        "language": preferences.language,
        "temperature_unit": preferences.temperature_unit.value,
        "wind_unit": preferences.wind_unit.value,
        "pressure_unit": preferences.pressure_unit.value,
        "notify_email": preferences.notify_email,
        "notify_push": preferences.notify_push,
        "profile_public": preferences.profile_public,
    }


def map_json_to_preferences(raw: Mapping[str, Any] | None) -> AccountPreferences:
    defaults = AccountPreferences()
    raw = raw or {}
    return AccountPreferences(
        theme=Theme(raw.get("theme", defaults.theme.value)),
        language=raw.get("language", defaults.language),
        temperature_unit=TemperatureUnit(raw.get("temperature_unit", defaults.temperature_unit.value)),
        wind_unit=WindUnit(raw.get("wind_unit", defaults.wind_unit.value)),
        pressure_unit=PressureUnit(raw.get("pressure_unit", defaults.pressure_unit.value)),
        notify_email=bool(raw.get("notify_email", defaults.notify_email)),
        notify_push=bool(raw.get("notify_push", defaults.notify_push)),
        profile_public=bool(raw.get("profile_public", defaults.profile_public)),
    )


def map_row_to_account(row: Mapping[str, Any]) -> Account:
    return Account(
        id=_as_str(row["id"]),
        email=row["email"],
        display_name=row["display_name"],
        profile_picture=row.get("profile_picture"),
        status=AccountStatus(row["status"]),
        preferences=map_json_to_preferences(row.get("preferences")),
        stats=map_row_to_stats(row),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_active_at=row["last_active_at"],
    )


def map_row_to_stats(row: Mapping[str, Any]) -> AccountStats:
    return AccountStats(
        total_records=int(row["total_records"] or 0),
        total_cities=int(row["total_cities"] or 0),
        total_countries=int(row["total_countries"] or 0),
        last_record_at=row.get("last_record_at"),
        favorite_cities=map_json_to_places(row.get("favorite_cities")),
        favorite_countries=map_json_to_places(row.get("favorite_countries")),
    )


def places_to_json(places: tuple[PlaceCount, ...]) -> list[dict]:
    return [{"name": place.name, "count": place.count} for place in places]


def map_json_to_places(raw: list | None) -> tuple[PlaceCount, ...]:
    return tuple(PlaceCount(name=str(item["name"]), count=int(item["count"])) for item in raw or [])


def map_row_to_identity_link(row: Mapping[str, Any]) -> IdentityLink:
    return IdentityLink(
        id=_as_str(row["id"]),
        account_id=_as_str(row["account_id"]),
        provider=AuthProvider(row["provider"]),
        provider_subject=row["provider_subject"],
        email=row["email"],
        name=row["name"],
        picture=row.get("picture"),
        verified=bool(row["verified"]),
        last_login_at=row["last_login_at"],
        created_at=row["created_at"],
        password_hash=row.get("password_hash"),
    )


def map_row_to_credential(row: Mapping[str, Any]) -> CredentialRecord:
    return CredentialRecord(
        id=_as_str(row["id"]),
        account_id=_as_str(row["account_id"]),
        kind=CredentialKind(row["kind"]),
        token_hash=row["token_hash"],
        issued_at=row["issued_at"],
        expires_at=row["expires_at"],
        user_agent=row.get("user_agent"),
        ip=row.get("ip"),
    )


def map_row_to_data_record(row: Mapping[str, Any]) -> DataRecord:
    return DataRecord(
        id=_as_str(row["id"]),
        account_id=_as_str(row["account_id"]),
        city=row["city"],
        country=row["country"],
        recorded_at=row["recorded_at"],
        payload=dict(row.get("payload") or {}),
        created_at=row["created_at"],
    )
