"""Store settings editable from the dashboard."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.database import get_db
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.settings import StoreSettings
from sphire.models.user import User
from sphire.schemas.admin import SettingsResponse, SettingsUpdate
from sphire.services.activity import log_activity

router = APIRouter()


async def get_active_settings(db: AsyncSession) -> StoreSettings:
    """The active settings row, created with defaults on first use."""
    result = await db.execute(
        select(StoreSettings)
        .where(StoreSettings.is_active.is_(True))
        .order_by(StoreSettings.id)
        .limit(1)
    )
    store_settings = result.scalar_one_or_none()
    if store_settings is None:
        store_settings = StoreSettings(is_active=True)
        db.add(store_settings)
        await db.flush()
        await db.refresh(store_settings)
    return store_settings


@router.get("/settings", response_model=SettingsResponse)
async def read_settings(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    store_settings = await get_active_settings(db)
    await db.commit()
    return store_settings


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    payload: SettingsUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Merge the sent sections into the stored ones; omitted keys keep their values."""
    store_settings = await get_active_settings(db)

    sections = payload.model_dump(exclude_unset=True, exclude_none=True)
    for section, values in sections.items():
        store_settings.apply(section, values)
    store_settings.updated_by_id = admin.id

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.SETTINGS,
        resource_id=store_settings.id,
        description="Updated store settings",
        details={"sections": sorted(sections)},
        request=request,
    )
    await db.commit()
    await db.refresh(store_settings)
    return store_settings
