"""User, address and authentication schemas."""
from datetime import datetime
from typing import Annotated, Optional, List
from pydantic import AfterValidator, BaseModel, BeforeValidator, EmailStr, Field, ConfigDict

from sphire.models.user import UserRole, AddressType

PHONE_PATTERN = r"^\+?[0-9\s\-]+$"


def _normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


def _check_phone_digits(value: str) -> str:
    digits = sum(ch.isdigit() for ch in value)
    if not 7 <= digits <= 15:
        raise ValueError("Phone number must have 7 to 15 digits")
    return value


Phone = Annotated[
    str, Field(max_length=20, pattern=PHONE_PATTERN), AfterValidator(_check_phone_digits)
]


class AddressBase(BaseModel):
    """Base address schema."""
    type: AddressType = AddressType.HOME
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("Pakistan", max_length=100)


class AddressCreate(AddressBase):
    is_default: bool = False


class AddressUpdate(BaseModel):
    type: Optional[AddressType] = None
    street: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    is_default: Optional[bool] = None


class AddressResponse(AddressBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_default: bool


class UserBase(BaseModel):
    """Base user schema."""
    name: str = Field(..., min_length=2, max_length=50)
    email: NormalizedEmail


class UserCreate(UserBase):
    """Schema for registering a user."""
    password: str = Field(..., min_length=6, max_length=72)


class UserUpdate(BaseModel):
    """Profile fields a user may edit."""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[Phone] = None
    avatar_url: Optional[str] = Field(None, max_length=500)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=72)


class PreferencesUpdate(BaseModel):
    newsletter: Optional[bool] = None
    notifications: Optional[bool] = None


class UserResponse(UserBase):
    """Schema for user response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole
    is_active: bool
    email_verified: bool
    newsletter: bool
    notifications: bool
    addresses: List[AddressResponse] = []
    created_at: datetime
    last_login: Optional[datetime] = None


class UserLogin(BaseModel):
    """Schema for user login."""
    email: NormalizedEmail
    password: str


class SocialLogin(BaseModel):
    """Profile handed over by the storefront after a Google or Facebook sign-in."""
    email: NormalizedEmail
    name: str = Field(..., min_length=2, max_length=50)
    avatar_url: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    """Schema for authentication tokens."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    """Tokens plus the signed-in user."""
    user: UserResponse


# Admin-side user management

class AdminUserCreate(UserCreate):
    phone: Optional[Phone] = None
    role: UserRole = UserRole.USER
    is_active: bool = True


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[NormalizedEmail] = None
    phone: Optional[Phone] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6, max_length=72)


class CustomerAddressResponse(AddressResponse):
    """Address flattened with its owner for the dashboard address book."""
    user_id: int
    user_name: str
    user_email: str
