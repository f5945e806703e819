"""White-label settings router."""

from fastapi import APIRouter, Request

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    AdminUser,
    SettingsServiceDep,
    request_context,
)
from proxportal.schemas import ApiResponse, WhiteLabelConfig, WhiteLabelUpdate

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=ApiResponse[WhiteLabelConfig])
async def get_settings(branding: SettingsServiceDep) -> ApiResponse[WhiteLabelConfig]:
    """Get the branding. Public so the login page can use it."""
    settings = await branding.get()
    return ApiResponse(data=WhiteLabelConfig.model_validate(settings))


@router.put("", response_model=ApiResponse[WhiteLabelConfig])
async def update_settings(
    request: Request,
    data: WhiteLabelUpdate,
    admin: AdminUser,
    branding: SettingsServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[WhiteLabelConfig]:
    """Update the fields that were sent."""
    settings = await branding.update(data)

    # Image payloads are too large to keep in the log
    await activity.log(
        admin.id,
        "settings.update",
        details={"fields": sorted(data.model_fields_set)},
        **request_context(request),
    )
    return ApiResponse(
        message="Settings updated successfully", data=WhiteLabelConfig.model_validate(settings)
    )


@router.post("/reset", response_model=ApiResponse[WhiteLabelConfig])
async def reset_settings(
    request: Request,
    admin: AdminUser,
    branding: SettingsServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[WhiteLabelConfig]:
    """Restore the default branding."""
    settings = await branding.reset()
    await activity.log(admin.id, "settings.reset", **request_context(request))
    return ApiResponse(
        message="Settings reset to defaults", data=WhiteLabelConfig.model_validate(settings)
    )
