"""Profile, password, preferences and address-book endpoints."""
from typing import List
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.database import get_db
from sphire.core.security import get_current_user, get_password_hash, verify_password
from sphire.models.user import Address, User
from sphire.schemas.common import Message
from sphire.schemas.user import (
    AddressCreate, AddressResponse, AddressUpdate,
    PasswordChange, PreferencesUpdate, UserResponse, UserUpdate,
)

logger = structlog.get_logger()

router = APIRouter()


def _find_address(user: User, address_id: int) -> Address:
    address = next((a for a in user.addresses if a.id == address_id), None)
    if address is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found",
        )
    return address


@router.get("/profile", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)):
    """Get the signed-in user's profile."""
    return user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_data: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update name, phone or avatar URL."""
    for field, value in profile_data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await db.commit()
    return user


@router.put("/password", response_model=Message)
async def change_password(
    payload: PasswordChange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change password after checking the current one."""
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    user.hashed_password = get_password_hash(payload.new_password)
    await db.commit()

    logger.info("password_changed", user_id=user.id)
    return {"message": "Password updated successfully"}


@router.put("/preferences", response_model=UserResponse)
async def update_preferences(
    preferences: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    for field, value in preferences.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, field, value)

    await db.commit()
    return user


@router.get("/addresses", response_model=List[AddressResponse])
async def list_addresses(user: User = Depends(get_current_user)):
    return user.addresses


@router.post("/addresses", response_model=List[AddressResponse], status_code=status.HTTP_201_CREATED)
async def add_address(
    address_data: AddressCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add an address. The first one, or one flagged default, becomes the default."""
    address = Address(**address_data.model_dump(exclude={"is_default"}))
    user.addresses.append(address)

    if address_data.is_default or len(user.addresses) == 1:
        user.set_default_address(address)

    await db.commit()
    return user.addresses


@router.put("/addresses/{address_id}", response_model=List[AddressResponse])
async def update_address(
    address_id: int,
    address_data: AddressUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    address = _find_address(user, address_id)
    changes = address_data.model_dump(exclude_unset=True)
    make_default = changes.pop("is_default", None)

    for field, value in changes.items():
        setattr(address, field, value)

    if make_default:
        user.set_default_address(address)

    await db.commit()
    return user.addresses


@router.delete("/addresses/{address_id}", response_model=List[AddressResponse])
async def delete_address(
    address_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete an address, promoting the first remaining one if it was the default."""
    user.remove_address(_find_address(user, address_id))

    await db.commit()
    return user.addresses


@router.put("/addresses/{address_id}/default", response_model=List[AddressResponse])
async def set_default_address(
    address_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    address = _find_address(user, address_id)
    user.set_default_address(address)

    await db.commit()
    return user.addresses
