"""Admin management of warehouses, stores and delivery zones."""
from typing import Optional
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.security import get_current_admin
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.location import Location, LocationType
from sphire.models.user import User
from sphire.schemas.common import Message, Page
from sphire.schemas.location import DeliveryQuote, LocationCreate, LocationResponse, LocationUpdate
from sphire.services.activity import log_activity

logger = structlog.get_logger()

router = APIRouter()


async def get_location_or_404(db: AsyncSession, location_id: int) -> Location:
    location = await db.get(Location, location_id)
    if not location:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found",
        )
    return location


async def ensure_code_free(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> None:
    query = select(Location.id).where(Location.code == code)
    if exclude_id is not None:
        query = query.where(Location.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Location code already exists",
        )


async def clear_default(db: AsyncSession, keep_id: Optional[int] = None) -> None:
    """Only one location may be the default."""
    stmt = update(Location).where(Location.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Location.id != keep_id)
    await db.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))


@router.get("/locations", response_model=Page[LocationResponse])
async def list_locations(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    location_type: Optional[LocationType] = Query(None, alias="type"),
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(Location)
    if location_type:
        query = query.where(Location.type == location_type)
    if is_active is not None:
        query = query.where(Location.is_active.is_(is_active))
    if search:
        query = query.where(
            Location.name.ilike(f"%{search}%") | Location.code.ilike(f"%{search}%")
        )
    query = query.order_by(Location.is_default.desc(), Location.name, Location.id)

    locations, total = await paginate(db, query, page, page_size)
    return Page[LocationResponse].build(locations, total, page, page_size)


@router.get("/locations/{location_id}", response_model=LocationResponse)
async def get_location(
    location_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_location_or_404(db, location_id)


@router.post("/locations", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(
    location_data: LocationCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await ensure_code_free(db, location_data.code)
    if location_data.is_default:
        await clear_default(db)

    location = Location(**location_data.model_dump())
    db.add(location)
    await db.flush()

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.CREATE,
        resource=ActivityResource.LOCATION,
        resource_id=location.id,
        description=f"Created location {location.code}",
        details={"type": location.type.value},
        request=request,
    )
    await db.commit()

    logger.info("location_created", location_id=location.id, code=location.code)
    return location


@router.put("/locations/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: int,
    location_data: LocationUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    location = await get_location_or_404(db, location_id)
    changes = {
        field: value
        for field, value in location_data.model_dump(exclude_unset=True).items()
        if value is not None or field == "notes"
    }

    if "code" in changes and changes["code"] != location.code:
        await ensure_code_free(db, changes["code"], exclude_id=location.id)
    if changes.get("is_default"):
        await clear_default(db, keep_id=location.id)

    for field, value in changes.items():
        setattr(location, field, value)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.LOCATION,
        resource_id=location.id,
        description=f"Updated location {location.code}",
        details={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    return location


@router.delete("/locations/{location_id}", response_model=Message)
async def delete_location(
    location_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    location = await get_location_or_404(db, location_id)

    await db.delete(location)
    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.LOCATION,
        resource_id=location_id,
        description=f"Deleted location {location.code}",
        request=request,
    )
    await db.commit()
    return {"message": "Location deleted successfully"}


@router.get("/locations/{location_id}/delivery-cost", response_model=DeliveryQuote)
async def delivery_cost(
    location_id: int,
    city: str = Query(..., min_length=1, max_length=100),
    order_value: float = Query(0, ge=0),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Quote delivery from a location to a city; unserved cities are not serviceable."""
    location = await get_location_or_404(db, location_id)
    cost = location.calculate_delivery_cost(city, order_value)
    return DeliveryQuote(
        location_id=location.id,
        city=city,
        order_value=order_value,
        delivery_cost=cost,
        serviceable=cost is not None,
    )
