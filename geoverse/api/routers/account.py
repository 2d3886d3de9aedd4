from __future__ import annotations

from fastapi import APIRouter, Depends

from geoverse.api.deps import (
    get_current_account,
    get_delete_account_use_case,
    get_get_me_use_case,
    get_update_profile_use_case,
)
from geoverse.api.schemas.account import (
    AccountResponse,
    AccountSummaryResponse,
    DeleteAccountRequest,
    DeleteAccountResponse,
    MeResponse,
    UpdateProfileRequest,
)
from geoverse.application.dto.account import DeleteAccountInput, PreferencesPatch, UpdateProfileInput
from geoverse.application.use_cases.delete_account import DeleteAccountUseCase
from geoverse.application.use_cases.get_me import GetMeUseCase
from geoverse.application.use_cases.update_profile import UpdateProfileUseCase
from geoverse.domain.entities.account import Account


router = APIRouter(prefix="/auth")


@router.get("/me", response_model=MeResponse)
def get_me(
    account: Account = Depends(get_current_account),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    return MeResponse.from_output(use_case.execute(account=account))


@router.put("/profile", response_model=AccountResponse)
def update_profile(
    req: UpdateProfileRequest,
    account: Account = Depends(get_current_account),
    use_case: UpdateProfileUseCase = Depends(get_update_profile_use_case),
):
    preferences = None
    if req.preferences is not None:
        preferences = PreferencesPatch(**req.preferences.model_dump())
    output = use_case.execute(
        UpdateProfileInput(
            account_id=account.id,
            display_name=req.display_name,
            preferences=preferences,
        )
    )
    return AccountResponse(user=AccountSummaryResponse.from_output(output))


@router.delete("/account", response_model=DeleteAccountResponse)
def delete_account(
    req: DeleteAccountRequest,
    account: Account = Depends(get_current_account),
    use_case: DeleteAccountUseCase = Depends(get_delete_account_use_case),
):
    use_case.execute(DeleteAccountInput(account_id=account.id, confirmation=req.confirmation))
    return DeleteAccountResponse(message="Account deleted.")
