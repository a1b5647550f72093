"""Request and response schemas shared by the routes and services."""

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from kata.auth.passwords import MAX_PASSWORD_BYTES
from kata.models.sweet import MAX_STOCK_QUANTITY, SweetCategory
from kata.models.user import UserRole

MIN_USER_NAME_LENGTH = 2
MAX_USER_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6
MIN_SWEET_NAME_LENGTH = 2
MAX_SWEET_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
IMAGE_URL_PREFIXES = ('/', 'http://', 'https://')


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def normalize_email(value: str) -> str:
    return value.strip().lower()


def validate_sweet_name(value: str) -> str:
    normalized = value.strip()
    if not MIN_SWEET_NAME_LENGTH <= len(normalized) <= MAX_SWEET_NAME_LENGTH:
        raise ValueError(
            f'Name must be between {MIN_SWEET_NAME_LENGTH} and {MAX_SWEET_NAME_LENGTH} characters'
        )
    return normalized


def validate_price(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError('Price must be a finite number')
    if value < 0:
        raise ValueError('Price must be a positive number')
    return value


def validate_stock_quantity(value: int) -> int:
    if value < 0:
        raise ValueError('Quantity must be a non-negative integer')
    return validate_quantity_ceiling(value)


def validate_quantity_ceiling(value: int) -> int:
    if value > MAX_STOCK_QUANTITY:
        raise ValueError(f'Quantity cannot exceed {MAX_STOCK_QUANTITY}')
    return value


def validate_description(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f'Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters')
    return normalized


def validate_image_url(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if not normalized.startswith(IMAGE_URL_PREFIXES):
        raise ValueError('Invalid image URL or path')
    return normalized


class RegisterRequest(CamelModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.USER

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not MIN_USER_NAME_LENGTH <= len(normalized) <= MAX_USER_NAME_LENGTH:
            raise ValueError(
                f'Name must be between {MIN_USER_NAME_LENGTH} and {MAX_USER_NAME_LENGTH} characters'
            )
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password cannot exceed {MAX_PASSWORD_BYTES} bytes')
        return value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required')
        return value


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class SweetCreate(CamelModel):
    name: str
    category: SweetCategory
    price: float
    quantity: int
    description: str | None = None
    image_url: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return validate_sweet_name(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float) -> float:
        return validate_price(value)

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, value: int) -> int:
        return validate_stock_quantity(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return validate_description(value)

    @field_validator('image_url')
    @classmethod
    def validate_image_url(cls, value: str | None) -> str | None:
        return validate_image_url(value)


class SweetUpdate(CamelModel):
    """Partial update; only fields present in the payload are applied."""

    name: str | None = None
    category: SweetCategory | None = None
    price: float | None = None
    quantity: int | None = None
    description: str | None = None
    image_url: str | None = None

    # Validators only run for supplied fields, so None below is an explicit null.
    @field_validator('name', 'category', 'price', 'quantity')
    @classmethod
    def validate_required_fields(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise ValueError(f'{to_camel(info.field_name)} cannot be null')
        if info.field_name == 'name':
            return validate_sweet_name(value)
        if info.field_name == 'price':
            return validate_price(value)
        if info.field_name == 'quantity':
            return validate_stock_quantity(value)
        return value

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return validate_description(value)

    @field_validator('image_url')
    @classmethod
    def validate_image_url(cls, value: str | None) -> str | None:
        return validate_image_url(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class SweetSearch(CamelModel):
    name: str | None = None
    category: SweetCategory | None = None
    min_price: float | None = None
    max_price: float | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class SweetResponse(CamelModel):
    id: int
    name: str
    category: SweetCategory
    price: float
    quantity: int
    description: str | None = None
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime


class PurchaseRequest(CamelModel):
    quantity: int | None = None

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, value: int | None) -> int | None:
        if value is None:
            return None
        return validate_quantity_ceiling(value)


class RestockRequest(CamelModel):
    quantity: int

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, value: int) -> int:
        return validate_quantity_ceiling(value)


class UploadResponse(CamelModel):
    url: str
    filename: str


def success_response(
    data: Any = None,
    message: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {'success': True}
    if message is not None:
        body['message'] = message
    if count is not None:
        body['count'] = count
    if data is not None:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode='json', by_alias=True)
        elif isinstance(data, list):
            data = [
                item.model_dump(mode='json', by_alias=True) if isinstance(item, BaseModel) else item
                for item in data
            ]
        body['data'] = data
    return body
