"""Core Data Models - Pydantic models for type safety.

Stored records (User, Recipe, CookingLogEntry) and the request models that
callers submit. Request models forbid unknown fields so derived or internal
values (rating, cooking_log, environment, owner_id) can never be set from
outside.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, get_args
import uuid

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, EmailStr, Field


HeroIngredient = Literal[
    "Chicken",
    "Beef",
    "Pork",
    "Fish",
    "Seafood",
    "Pasta",
    "Vegetable",
    "Pastry",
    "Dessert",
]

HERO_INGREDIENTS = get_args(HeroIngredient)

USERNAME_PATTERN = r"^[A-Za-z0-9_-]+$"
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every stored instant is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def within_hash_limit(value: str) -> str:
    """bcrypt only reads the first 72 bytes of a password."""
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


NewPassword = Annotated[str, Field(min_length=MIN_PASSWORD_LENGTH), AfterValidator(within_hash_limit)]


def new_id() -> str:
    return str(uuid.uuid4())


class Environment(str, Enum):
    """Tenancy tag isolating test fixtures from development/production data."""

    TEST = "test"
    DEVELOPMENT = "development"
    PRODUCTION = "production"


# ==================== Stored Records ====================


class CookingLogEntry(BaseModel):
    """A single cooking session recorded against a recipe."""

    timestamp: UtcDatetime = Field(default_factory=utcnow, description="When the dish was cooked")
    notes: str = Field(description="Free text notes about the session")
    rating: int = Field(ge=1, le=5, description="Session rating, 1-5")


class Recipe(BaseModel):
    """Recipe record. ``rating`` is derived from ``cooking_log`` and never set directly."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    owner_id: Optional[str] = Field(default=None, description="None for seed recipes")
    name: str = Field(min_length=1)
    hero_ingredient: HeroIngredient
    cook_time_minutes: int = Field(ge=1, le=1440)
    servings: int = Field(ge=1, le=50)
    ingredients: str
    instructions: str
    photo_ref: Optional[str] = Field(default=None, description="Opaque media reference")
    rating: int = Field(default=0, ge=0, le=5)
    cooking_log: list[CookingLogEntry] = Field(default_factory=list, description="Newest first")
    created_at: UtcDatetime = Field(default_factory=utcnow)
    environment: Environment

    def to_public(self) -> dict:
        """Outward representation; the partition tag never leaves the core."""
        return self.model_dump(mode="json", exclude={"environment"})


class UserProfile(BaseModel):
    """Public view of a user, safe to show to anyone."""

    id: str
    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime


class Account(UserProfile):
    """A user's view of their own record."""

    email: str
    updated_at: datetime


class User(BaseModel):
    """User record. Credential and API key hashes never leave the store."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    username: str
    email: str
    credential_hash: str = Field(description="Salted password hash - never store plaintext")
    api_key_hash: Optional[str] = Field(default=None, description="SHA256 of the active API key")
    display_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)
    environment: Environment

    def to_profile(self) -> UserProfile:
        return UserProfile(**self.model_dump(include=set(UserProfile.model_fields)))

    def to_account(self) -> Account:
        return Account(**self.model_dump(include=set(Account.model_fields)))


# ==================== Request Models ====================


class RecipeCreate(BaseModel):
    """Fields a caller supplies when creating a recipe."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    hero_ingredient: HeroIngredient
    cook_time_minutes: int = Field(ge=1, le=1440, description="1 minute to 24 hours")
    servings: int = Field(ge=1, le=50)
    ingredients: str
    instructions: str
    photo_ref: Optional[str] = None


class RecipeUpdate(BaseModel):
    """Partial recipe update. Only fields that were sent are applied."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    hero_ingredient: Optional[HeroIngredient] = None
    cook_time_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    servings: Optional[int] = Field(default=None, ge=1, le=50)
    ingredients: Optional[str] = None
    instructions: Optional[str] = None
    photo_ref: Optional[str] = None


class CookingLogInput(BaseModel):
    """A cooking session as submitted by a caller.

    ``date`` is accepted as a legacy alias for ``timestamp``; when neither is
    sent the server time is used.
    """

    model_config = ConfigDict(extra="forbid")

    timestamp: Optional[UtcDatetime] = Field(
        default=None, validation_alias=AliasChoices("timestamp", "date")
    )
    notes: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)

    def to_entry(self) -> CookingLogEntry:
        if self.timestamp is None:
            return CookingLogEntry(notes=self.notes, rating=self.rating)
        return CookingLogEntry(timestamp=self.timestamp, notes=self.notes, rating=self.rating)


class UserCreate(BaseModel):
    """Registration request."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: NewPassword
    display_name: Optional[str] = Field(default=None, min_length=1)


class UserUpdate(BaseModel):
    """Partial profile update."""

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    display_name: Optional[str] = Field(default=None, min_length=1)
    bio: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PasswordChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1)
    new_password: NewPassword
