"""Shared fixtures: an in-process store per test, isolated by construction."""

from unittest.mock import patch

import pytest

from recipekitchen.core.models import Environment, RecipeCreate
from recipekitchen.shell.environment import EnvironmentPartition
from recipekitchen.shell.memory_store import InMemoryDatabase, InMemoryRecipeStore
from recipekitchen.shell.service import RecipeService


def make_recipe_fields(**overrides) -> RecipeCreate:
    data = {
        "name": "Test Chicken",
        "hero_ingredient": "Chicken",
        "cook_time_minutes": 30,
        "servings": 4,
        "ingredients": "1 chicken\nSalt",
        "instructions": "Roast it.",
    }
    data.update(overrides)
    return RecipeCreate(**data)


@pytest.fixture(autouse=True)
def fast_password_hashing():
    """Use bcrypt's minimum work factor so tests stay quick."""
    with patch("recipekitchen.shell.auth.BCRYPT_ROUNDS", 4):
        yield


@pytest.fixture
def recipe_fields():
    """Factory for valid recipe fields with overrides."""
    return make_recipe_fields


@pytest.fixture
def database():
    """Physical tables shared between partitions."""
    return InMemoryDatabase()


@pytest.fixture
def store(database):
    """Store scoped to the test environment."""
    return InMemoryRecipeStore(EnvironmentPartition(Environment.TEST), database)


@pytest.fixture
def prod_store(database):
    """Store over the same tables, scoped to production."""
    return InMemoryRecipeStore(EnvironmentPartition(Environment.PRODUCTION), database)


@pytest.fixture
def service(store):
    return RecipeService(store)


@pytest.fixture
def alice(store):
    return store.create_user(username="alice", email="alice@example.com", credential_hash="x.y")


@pytest.fixture
def bob(store):
    return store.create_user(username="bob", email="bob@example.com", credential_hash="x.y")


@pytest.fixture
def alice_recipe(store, alice):
    return store.create_recipe(make_recipe_fields(), alice.id)
