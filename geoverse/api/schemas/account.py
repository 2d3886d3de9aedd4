from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from geoverse.api.schemas.records import RecordResponse
from geoverse.application.dto.account import AccountSummaryOutput, MeOutput


class PreferencesResponse(BaseModel):
    theme: str
    language: str
    temperature_unit: str
    wind_unit: str
    pressure_unit: str
    notify_email: bool
    notify_push: bool
    profile_public: bool


class PlaceCountResponse(BaseModel):
    name: str
    count: int


class StatsResponse(BaseModel):
    total_records: int
    total_cities: int
    total_countries: int
    last_record_at: datetime | None
    favorite_cities: list[PlaceCountResponse]
    favorite_countries: list[PlaceCountResponse]


class LinkedProviderResponse(BaseModel):
    provider: str
    email: str
    verified: bool
    last_login_at: datetime


class AccountSummaryResponse(BaseModel):
    id: str
    email: str
    display_name: str
    profile_picture: str | None
    status: str
    preferences: PreferencesResponse
    stats: StatsResponse
    account_age_days: int
    last_active_at: datetime
    providers: list[LinkedProviderResponse]

    @classmethod
    def from_output(cls, output: AccountSummaryOutput) -> AccountSummaryResponse:
        prefs = output.preferences
        stats = output.stats
        return cls(
            id=output.id,
            email=output.email,
            display_name=output.display_name,
            profile_picture=output.profile_picture,
            status=output.status,
            preferences=PreferencesResponse(
                theme=prefs.theme.value,
                language=prefs.language,
                temperature_unit=prefs.temperature_unit.value,
                wind_unit=prefs.wind_unit.value,
                pressure_unit=prefs.pressure_unit.value,
                notify_email=prefs.notify_email,
                notify_push=prefs.notify_push,
                profile_public=prefs.profile_public,
            ),
            stats=StatsResponse(
                total_records=stats.total_records,
                total_cities=stats.total_cities,
                total_countries=stats.total_countries,
                last_record_at=stats.last_record_at,
                favorite_cities=[PlaceCountResponse(name=p.name, count=p.count) for p in stats.favorite_cities],
                favorite_countries=[PlaceCountResponse(name=p.name, count=p.count) for p in stats.favorite_countries],
            ),
            account_age_days=output.account_age_days,
            last_active_at=output.last_active_at,
            providers=[
                LinkedProviderResponse(
                    provider=link.provider,
                    email=link.email,
                    verified=link.verified,
                    last_login_at=link.last_login_at,
                )
                for link in output.providers
            ],
        )


class AccountResponse(BaseModel):
    success: bool = True
    user: AccountSummaryResponse


class MeResponse(BaseModel):
    success: bool = True
    user: AccountSummaryResponse
    recent_records: list[RecordResponse]

    @classmethod
    def from_output(cls, output: MeOutput) -> MeResponse:
        return cls(
            user=AccountSummaryResponse.from_output(output.account),
            recent_records=[RecordResponse.from_entity(record) for record in output.recent_records],
        )


class PreferencesPatchRequest(BaseModel):
    theme: str | None = None
    language: str | None = None
    temperature_unit: str | None = None
    wind_unit: str | None = None
    pressure_unit: str | None = None
    notify_email: bool | None = None
    notify_push: bool | None = None
    profile_public: bool | None = None


class UpdateProfileRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=255)
    preferences: PreferencesPatchRequest | None = None


class DeleteAccountRequest(BaseModel):
    confirmation: str | None = None


class DeleteAccountResponse(BaseModel):
    success: bool = True
    message: str
