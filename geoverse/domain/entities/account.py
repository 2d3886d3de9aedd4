from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


class AuthProvider(str, Enum):
    GOOGLE = "google"
    GITHUB = "github"
    FACEBOOK = "facebook"
    LOCAL = "local"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class TemperatureUnit(str, Enum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class WindUnit(str, Enum):
    METERS_PER_SECOND = "m/s"
    KILOMETERS_PER_HOUR = "km/h"
    MILES_PER_HOUR = "mph"


class PressureUnit(str, Enum):
    HECTOPASCAL = "hPa"
    MILLIMETERS_HG = "mmHg"
    INCHES_HG = "inHg"


@dataclass(frozen=True)
class AccountPreferences:
    theme: Theme = Theme.AUTO
    language: str = "en"
    temperature_unit: TemperatureUnit = TemperatureUnit.CELSIUS
    wind_unit: WindUnit = WindUnit.METERS_PER_SECOND
    pressure_unit: PressureUnit = PressureUnit.HECTOPASCAL
    notify_email: bool = True
    notify_push: bool = False
    profile_public: bool = False


@dataclass(frozen=True)
class PlaceCount:
    name: str
    count: int


@dataclass(frozen=True)
class AccountStats:
    total_records: int = 0
    total_cities: int = 0
    total_countries: int = 0
    last_record_at: datetime | None = None
    favorite_cities: tuple[PlaceCount, ...] = ()
    favorite_countries: tuple[PlaceCount, ...] = ()


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    display_name: str
    profile_picture: str | None
    status: AccountStatus
    preferences: AccountPreferences
    stats: AccountStats
    created_at: datetime
    updated_at: datetime
    last_active_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE


@dataclass(frozen=True)
class IdentityLink:
    id: str
    account_id: str
    provider: AuthProvider
    provider_subject: str
    email: str
    name: str
    picture: str | None
    verified: bool
    last_login_at: datetime
    created_at: datetime
    password_hash: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class NewIdentityLink:
    id: str
    provider: AuthProvider
    provider_subject: str
    email: str
    name: str
    picture: str | None
    verified: bool
