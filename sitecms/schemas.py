import math

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationInfo, field_validator
from typing import Optional

from .security import is_valid_email

# Request bodies use the camelCase field names stored in MongoDB
class Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

# --- Media links ---
class VideoCreate(Payload):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    embed_link: str = Field(..., alias="embedLink", min_length=1)
    original_link: str = Field(..., alias="originalLink", min_length=1)
    category: str = Field(..., min_length=1)

class VideoUpdate(Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    embed_link: Optional[str] = Field(None, alias="embedLink")
    original_link: Optional[str] = Field(None, alias="originalLink")
    category: Optional[str] = None

class DocumentCreate(Payload):
    title: str = Field(..., min_length=1)
    original_link: str = Field(..., alias="originalLink", min_length=1)
    category: str = Field(..., min_length=1)
    description: Optional[str] = None

class DocumentUpdate(Payload):
    title: Optional[str] = None
    original_link: Optional[str] = Field(None, alias="originalLink")
    category: Optional[str] = None
    description: Optional[str] = None

# --- Singletons and page flags ---
class LogoUpdate(Payload):
    url: str = Field(..., min_length=1)

class SiteNameUpdate(Payload):
    name: str = Field(..., min_length=1)

class PageControlUpdate(Payload):
    enabled: StrictBool

class WelcomeNoteUpdate(Payload):
    title: str = Field(None, validate_default=True)
    message: str = Field(None, validate_default=True)

    @field_validator("title", "message", mode="before")
    @classmethod
    def non_empty_text(cls, value, info: ValidationInfo):
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{info.field_name.capitalize()} is required and must be a non-empty string")
        return value

# --- Subscription plans ---
def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

class PlanPayload(Payload):
    title: str = Field(..., min_length=1)
    price: float
    days: int
    discount: Optional[float] = None

    @field_validator("price", mode="before")
    @classmethod
    def positive_price(cls, value):
        if not _is_number(value) or value <= 0:
            raise ValueError("Price must be a positive number")
        return value

    @field_validator("days", mode="before")
    @classmethod
    def positive_days(cls, value):
        if not _is_number(value) or value <= 0 or int(value) != value:
            raise ValueError("Days must be a positive integer")
        return int(value)

    @field_validator("discount", mode="before")
    @classmethod
    def discount_range(cls, value):
        if value is None:
            return value
        if not _is_number(value) or value < 0 or value > 100:
            raise ValueError("Discount must be between 0 and 100")
        return value

# --- Users ---
class UserSignIn(Payload):
    email: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    picture: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Invalid email format")
        return value

class ProfileUpdate(Payload):
    name: str = Field(..., min_length=1)
    picture: Optional[str] = None

class SubscriptionActivation(Payload):
    plan_id: str = Field(..., alias="planId", min_length=1)

    @field_validator("plan_id")
    @classmethod
    def plan_id_format(cls, value: str) -> str:
        if not ObjectId.is_valid(value):
            raise ValueError("Invalid Plan ID format")
        return value
