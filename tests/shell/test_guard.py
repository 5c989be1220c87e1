"""Tests for the Ownership Guard check order."""

import pytest

from recipekitchen.core.errors import Forbidden, NotFound, Unauthenticated
from recipekitchen.shell.guard import OwnershipGuard


@pytest.fixture
def guard(store):
    return OwnershipGuard(store)


class TestRequireAuthenticated:
    def test_returns_actor(self, guard):
        assert guard.require_authenticated("user-1") == "user-1"

    @pytest.mark.parametrize("actor_id", [None, ""])
    def test_missing_actor(self, guard, actor_id):
        with pytest.raises(Unauthenticated):
            guard.require_authenticated(actor_id)


class TestRequireOwner:
    """Tests for require_owner."""

    def test_owner_allowed(self, guard, alice, alice_recipe):
        """The owner gets the recipe back."""
        recipe = guard.require_owner(alice.id, alice_recipe.id)
        assert recipe.id == alice_recipe.id

    def test_non_owner_forbidden(self, guard, bob, alice_recipe):
        with pytest.raises(Forbidden):
            guard.require_owner(bob.id, alice_recipe.id)

    def test_missing_recipe(self, guard, alice):
        with pytest.raises(NotFound):
            guard.require_owner(alice.id, "no-such-recipe")

    def test_unauthenticated_before_existence(self, guard):
        """No actor reports Unauthenticated even for a missing recipe."""
        with pytest.raises(Unauthenticated):
            guard.require_owner(None, "no-such-recipe")

    def test_unauthenticated_before_ownership(self, guard, alice_recipe):
        with pytest.raises(Unauthenticated):
            guard.require_owner(None, alice_recipe.id)

    def test_seed_recipe_forbidden(self, guard, store, alice, recipe_fields):
        """Seed recipes have no owner and cannot be mutated by anyone."""
        seed = store.create_recipe(recipe_fields(), owner_id=None)
        with pytest.raises(Forbidden):
            guard.require_owner(alice.id, seed.id)

    def test_other_environment_not_found(self, prod_store, alice_recipe):
        """A recipe in another partition does not exist from here."""
        prod_user = prod_store.create_user(username="alice", email="alice@example.com", credential_hash="x.y")
        with pytest.raises(NotFound):
            OwnershipGuard(prod_store).require_owner(prod_user.id, alice_recipe.id)
