"""Admin customer management."""
from typing import Optional, List
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.api.utils import paginate
from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.security import get_current_admin, get_password_hash
from sphire.models.activity_log import ActivityAction, ActivityResource
from sphire.models.order import Order
from sphire.models.review import Review
from sphire.models.user import Address, AddressType, User, UserRole
from sphire.schemas.admin import UserWithOrders
from sphire.schemas.common import Message, Page
from sphire.schemas.order import OrderResponse
from sphire.schemas.user import (
    AddressResponse, AddressUpdate, AdminUserCreate, AdminUserUpdate, CustomerAddressResponse,
    UserResponse,
)
from sphire.services.activity import log_activity
from sphire.services.ratings import recalculate_product_rating

logger = structlog.get_logger()

router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


async def ensure_email_free(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email",
        )


@router.get("/users", response_model=Page[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Search and filter user accounts."""
    query = select(User)
    if search:
        query = query.where(User.name.ilike(f"%{search}%") | User.email.ilike(f"%{search}%"))
    if role:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))
    query = query.order_by(User.created_at.desc(), User.id.desc())

    users, total = await paginate(db, query, page, page_size)
    return Page[UserResponse].build(users, total, page, page_size)


@router.get("/users/{user_id}", response_model=UserWithOrders)
async def get_user(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """A user with their ten most recent orders."""
    user = await get_user_or_404(db, user_id)
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(10)
    )

    detail = UserWithOrders.model_validate(user)
    detail.recent_orders = [OrderResponse.model_validate(o) for o in result.scalars().all()]
    return detail


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: AdminUserCreate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await ensure_email_free(db, user_data.email)

    user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        role=user_data.role,
        is_active=user_data.is_active,
        hashed_password=get_password_hash(user_data.password),
        addresses=[],
    )
    db.add(user)
    await db.flush()

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.CREATE,
        resource=ActivityResource.USER,
        resource_id=user.id,
        description=f"Created user {user.email}",
        details={"role": user.role.value},
        request=request,
    )
    await db.commit()
    return user


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: AdminUserUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit account fields, including role, status and a password reset."""
    user = await get_user_or_404(db, user_id)
    changes = user_data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes and changes["email"] != user.email:
        await ensure_email_free(db, changes["email"], exclude_id=user.id)

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    for field, value in changes.items():
        setattr(user, field, value)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.USER,
        resource_id=user.id,
        description=f"Updated user {user.email}",
        details={"fields": sorted(changes) + (["password"] if password else [])},
        request=request,
    )
    await db.commit()
    return user


@router.delete("/users/{user_id}", response_model=Message)
async def delete_user(
    user_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user without order history, along with their reviews."""
    user = await get_user_or_404(db, user_id)

    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    order_count = (await db.execute(
        select(func.count(Order.id)).where(Order.user_id == user.id)
    )).scalar() or 0
    if order_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete user with existing orders. Deactivate the account instead.",
        )

    reviewed = await db.execute(
        select(Review.product_id).where(Review.user_id == user.id).distinct()
    )
    reviewed_product_ids = reviewed.scalars().all()

    await db.delete(user)
    await db.flush()
    for product_id in reviewed_product_ids:
        await recalculate_product_rating(db, product_id)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.USER,
        resource_id=user_id,
        description=f"Deleted user {user.email}",
        request=request,
    )
    await db.commit()

    logger.info("user_deleted", user_id=user_id, admin_id=admin.id)
    return {"message": "User deleted successfully"}


@router.get("/addresses", response_model=Page[CustomerAddressResponse])
async def list_customer_addresses(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    address_type: Optional[AddressType] = Query(None, alias="type"),
    country: Optional[str] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every saved address with its owner."""
    query = select(Address, User).join(User, User.id == Address.user_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            User.name.ilike(pattern)
            | User.email.ilike(pattern)
            | Address.street.ilike(pattern)
            | Address.city.ilike(pattern)
        )
    if address_type:
        query = query.where(Address.type == address_type)
    if country:
        query = query.where(Address.country.ilike(country))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(Address.created_at.desc(), Address.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    items: List[CustomerAddressResponse] = [
        CustomerAddressResponse(
            **AddressResponse.model_validate(address).model_dump(),
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
        )
        for address, user in result.all()
    ]
    return Page[CustomerAddressResponse].build(items, total, page, page_size)



async def get_address_with_owner(db: AsyncSession, address_id: int) -> tuple[Address, User]:
    address = await db.get(Address, address_id)
    if not address:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Address not found",
        )
    return address, await db.get(User, address.user_id)


@router.put("/addresses/{address_id}", response_model=CustomerAddressResponse)
async def update_customer_address(
    address_id: int,
    address_data: AddressUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Correct a customer's address; flagging it default clears the others."""
    address, owner = await get_address_with_owner(db, address_id)
    changes = address_data.model_dump(exclude_unset=True)
    make_default = changes.pop("is_default", None)

    for field, value in changes.items():
        if value is not None:
            setattr(address, field, value)
    if make_default:
        owner.set_default_address(address)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.UPDATE,
        resource=ActivityResource.ADDRESS,
        resource_id=address.id,
        description=f"Updated address {address.id} of {owner.email}",
        details={"fields": sorted(changes) + (["is_default"] if make_default else [])},
        request=request,
    )
    await db.commit()

    return CustomerAddressResponse(
        **AddressResponse.model_validate(address).model_dump(),
        user_id=owner.id,
        user_name=owner.name,
        user_email=owner.email,
    )


@router.delete("/addresses/{address_id}", response_model=Message)
async def delete_customer_address(
    address_id: int,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    address, owner = await get_address_with_owner(db, address_id)
    owner.remove_address(address)

    log_activity(
        db,
        user_id=admin.id,
        action=ActivityAction.DELETE,
        resource=ActivityResource.ADDRESS,
        resource_id=address_id,
        description=f"Deleted address {address_id} of {owner.email}",
        request=request,
    )
    await db.commit()

    logger.info("customer_address_deleted", address_id=address_id, user_id=owner.id)
    return {"message": "Address deleted successfully"}
