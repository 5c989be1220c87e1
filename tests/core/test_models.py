"""Unit tests for data models - validation and defaults."""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from recipekitchen.core.errors import RecipeValidationError
from recipekitchen.core.models import (
    HERO_INGREDIENTS,
    CookingLogEntry,
    CookingLogInput,
    Environment,
    PasswordChange,
    Recipe,
    RecipeCreate,
    RecipeUpdate,
    User,
    UserCreate,
    UserUpdate,
)
from recipekitchen.core.validation import parse_log_index, parse_request


VALID_RECIPE = {
    "name": "Roast Chicken",
    "hero_ingredient": "Chicken",
    "cook_time_minutes": 30,
    "servings": 4,
    "ingredients": "1 chicken",
    "instructions": "Roast it.",
}


class TestRecipeCreate:
    """Tests for RecipeCreate request model."""

    def test_valid_recipe(self):
        """Valid recipe fields are accepted."""
        fields = RecipeCreate(**VALID_RECIPE)
        assert fields.hero_ingredient == "Chicken"
        assert fields.photo_ref is None

    def test_hero_ingredient_options(self):
        """The fixed set of hero ingredients is exposed."""
        assert HERO_INGREDIENTS == (
            "Chicken", "Beef", "Pork", "Fish", "Seafood",
            "Pasta", "Vegetable", "Pastry", "Dessert",
        )

    def test_unknown_hero_ingredient_rejected(self):
        """Hero ingredient outside the fixed set is rejected."""
        with pytest.raises(ValidationError):
            RecipeCreate(**{**VALID_RECIPE, "hero_ingredient": "Tofu"})

    @pytest.mark.parametrize("cook_time", [0, 1441, -5])
    def test_cook_time_out_of_range(self, cook_time):
        """Cook time must be 1-1440 minutes."""
        with pytest.raises(ValidationError):
            RecipeCreate(**{**VALID_RECIPE, "cook_time_minutes": cook_time})

    @pytest.mark.parametrize("cook_time", [1, 1440])
    def test_cook_time_bounds_inclusive(self, cook_time):
        """Cook time bounds are inclusive."""
        assert RecipeCreate(**{**VALID_RECIPE, "cook_time_minutes": cook_time}).cook_time_minutes == cook_time

    @pytest.mark.parametrize("servings", [0, 51])
    def test_servings_out_of_range(self, servings):
        """Servings must be 1-50."""
        with pytest.raises(ValidationError):
            RecipeCreate(**{**VALID_RECIPE, "servings": servings})

    @pytest.mark.parametrize("field", ["rating", "cooking_log", "environment", "owner_id"])
    def test_derived_fields_not_settable(self, field):
        """Derived and internal fields are rejected as input."""
        with pytest.raises(ValidationError):
            RecipeCreate(**{**VALID_RECIPE, field: 5})


class TestRecipeUpdate:
    """Tests for RecipeUpdate request model."""

    def test_partial_update(self):
        """Only sent fields are marked as set."""
        update = RecipeUpdate(name="New Name")
        assert update.model_dump(exclude_unset=True) == {"name": "New Name"}

    def test_rating_rejected(self):
        """Rating cannot be set directly."""
        with pytest.raises(ValidationError):
            RecipeUpdate(rating=5)

    def test_invalid_servings_rejected(self):
        with pytest.raises(ValidationError):
            RecipeUpdate(servings=100)


class TestRecipe:
    """Tests for the stored Recipe record."""

    def test_defaults(self):
        """New recipes start unrated with an empty log."""
        recipe = Recipe(**VALID_RECIPE, environment=Environment.TEST)
        assert recipe.rating == 0
        assert recipe.cooking_log == []
        assert recipe.owner_id is None
        assert recipe.id is not None  # Auto-generated UUID

    def test_public_view_hides_environment(self):
        """The partition tag is never part of the outward representation."""
        recipe = Recipe(**VALID_RECIPE, environment=Environment.TEST)
        public = recipe.to_public()
        assert "environment" not in public
        assert public["name"] == "Roast Chicken"


class TestCookingLogInput:
    """Tests for CookingLogInput request model."""

    def test_missing_rating_rejected(self):
        with pytest.raises(ValidationError):
            CookingLogInput(notes="Great")

    def test_missing_notes_rejected(self):
        with pytest.raises(ValidationError):
            CookingLogInput(rating=4)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        """Session rating must be 1-5."""
        with pytest.raises(ValidationError):
            CookingLogInput(notes="Great", rating=rating)

    def test_legacy_date_alias(self):
        """'date' is accepted in place of 'timestamp'."""
        entry = CookingLogInput.model_validate(
            {"date": "2024-03-01T18:30:00Z", "notes": "Great", "rating": 4}
        ).to_entry()
        assert entry.timestamp == datetime(2024, 3, 1, 18, 30, tzinfo=timezone.utc)

    def test_server_time_when_omitted(self):
        """Missing timestamp defaults to the current time."""
        before = datetime.now(timezone.utc)
        entry = CookingLogInput(notes="Great", rating=4).to_entry()
        assert entry.timestamp >= before

    def test_naive_timestamp_treated_as_utc(self):
        entry = CookingLogEntry(timestamp=datetime(2024, 1, 1, 12, 0), notes="x", rating=3)
        assert entry.timestamp.tzinfo is not None


class TestUserModels:
    """Tests for user request models and views."""

    def test_valid_registration(self):
        request = UserCreate(username="chef_01", email="chef@example.com", password="password123")
        assert request.display_name is None

    @pytest.mark.parametrize("username", ["ab", "a" * 51, "bad name", "semi;colon", "drop'--"])
    def test_invalid_usernames(self, username):
        """Usernames are 3-50 chars of letters, digits, underscore and dash."""
        with pytest.raises(ValidationError):
            UserCreate(username=username, email="chef@example.com", password="password123")

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UserCreate(username="chef", email="not-an-email", password="password123")

    def test_short_password(self):
        """Passwords shorter than 8 characters are rejected."""
        with pytest.raises(ValidationError):
            UserCreate(username="chef", email="chef@example.com", password="short")

    def test_password_byte_limit(self):
        """Passwords over 72 bytes are rejected, counting encoded bytes."""
        with pytest.raises(ValidationError):
            UserCreate(username="chef", email="chef@example.com", password="a" * 73)
        with pytest.raises(ValidationError):
            PasswordChange(current_password="old-password", new_password="é" * 37)
        assert UserCreate(username="chef", email="chef@example.com", password="a" * 72)

    def test_update_username_validated(self):
        with pytest.raises(ValidationError):
            UserUpdate(username="x")

    def test_views_hide_credentials(self):
        """Profile and account views never carry hashes."""
        user = User(
            username="chef",
            email="chef@example.com",
            credential_hash="secret.salt",
            api_key_hash="abc",
            environment=Environment.TEST,
        )
        account = user.to_account().model_dump()
        profile = user.to_profile().model_dump()

        assert "credential_hash" not in account
        assert "api_key_hash" not in account
        assert account["email"] == "chef@example.com"
        assert "email" not in profile


class TestParseRequest:
    """Tests for the boundary validator."""

    def test_returns_model(self):
        fields = parse_request(RecipeCreate, VALID_RECIPE)
        assert isinstance(fields, RecipeCreate)

    def test_field_level_details(self):
        """Validation errors name each failing field."""
        with pytest.raises(RecipeValidationError) as exc_info:
            parse_request(RecipeCreate, {**VALID_RECIPE, "servings": 0, "hero_ingredient": "Tofu"})

        fields = {d["field"] for d in exc_info.value.details}
        assert fields == {"servings", "hero_ingredient"}

    def test_non_mapping_rejected(self):
        with pytest.raises(RecipeValidationError):
            parse_request(RecipeCreate, ["not", "a", "dict"])

    def test_custom_message(self):
        with pytest.raises(RecipeValidationError) as exc_info:
            parse_request(RecipeCreate, {}, "Invalid recipe data")
        assert exc_info.value.message == "Invalid recipe data"


class TestParseLogIndex:
    """Tests for parse_log_index."""

    def test_numeric_string(self):
        assert parse_log_index("2") == 2

    def test_integer(self):
        assert parse_log_index(0) == 0

    @pytest.mark.parametrize("raw", ["abc", None, "", True])
    def test_invalid(self, raw):
        with pytest.raises(RecipeValidationError):
            parse_log_index(raw)
