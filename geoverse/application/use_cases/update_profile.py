from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, TypeVar

from geoverse.application.dto.account import AccountSummaryOutput, PreferencesPatch, UpdateProfileInput
from geoverse.application.ports.credential_store_port import CredentialStorePort
from geoverse.domain.entities.account import (
    AccountPreferences,
    PressureUnit,
    TemperatureUnit,
    Theme,
    WindUnit,
)
from geoverse.domain.exceptions import AccountNotFoundError, InputValidationError

from .auth_common import DISPLAY_NAME_MAX, DISPLAY_NAME_MIN, build_account_summary, utcnow


logger = logging.getLogger(__name__)

LANGUAGE_MIN = 2
LANGUAGE_MAX = 10

TEnum = TypeVar("TEnum", bound=Enum)


class UpdateProfileUseCase:
    def __init__(self, *, store: CredentialStorePort, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    def execute(self, command: UpdateProfileInput) -> AccountSummaryOutput:
        account = self._store.get_account_by_id(account_id=command.account_id)
        if account is None:
            raise AccountNotFoundError()

        display_name = account.display_name
        if command.display_name is not None:
            display_name = command.display_name.strip()
            if not DISPLAY_NAME_MIN <= len(display_name) <= DISPLAY_NAME_MAX:
                raise InputValidationError("Display name must be between 2 and 100 characters.")

        preferences = account.preferences
        if command.preferences is not None:
            preferences = merge_preferences(preferences, command.preferences)

        now = self._clock()
        updated = self._store.update_account_profile(
            account_id=account.id,
            display_name=display_name,
            preferences=preferences,
            now=now,
        )
        if updated is None:
            raise AccountNotFoundError()

        logger.info("update_profile: profile_updated account_id=%s", account.id)
        links = self._store.list_identity_links(account_id=account.id)
        return build_account_summary(updated, now=now, links=links)


def merge_preferences(current: AccountPreferences, patch: PreferencesPatch) -> AccountPreferences:
    changes: dict = {}
    if patch.theme is not None:
        changes["theme"] = _parse_enum(Theme, patch.theme, "Theme must be light, dark, or auto.")
    if patch.language is not None:
        language = patch.language.strip()
        if not LANGUAGE_MIN <= len(language) <= LANGUAGE_MAX:
            raise InputValidationError("Language code must be between 2 and 10 characters.")
        changes["language"] = language
    if patch.temperature_unit is not None:
        changes["temperature_unit"] = _parse_enum(
            TemperatureUnit, patch.temperature_unit, "Temperature unit must be celsius or fahrenheit."
        )
    if patch.wind_unit is not None:
        changes["wind_unit"] = _parse_enum(WindUnit, patch.wind_unit, "Wind unit must be m/s, km/h, or mph.")
    if patch.pressure_unit is not None:
        changes["pressure_unit"] = _parse_enum(
            PressureUnit, patch.pressure_unit, "Pressure unit must be hPa, mmHg, or inHg."
        )
    for flag in ("notify_email", "notify_push", "profile_public"):
        value = getattr(patch, flag)
        if value is not None:
            changes[flag] = bool(value)
    return replace(current, **changes)


def _parse_enum(enum_cls: type[TEnum], raw: str, message: str) -> TEnum:
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise InputValidationError(message) from exc
