"""Firestore Client - Persistence for users and recipes.

This module handles all database I/O for the recipe catalog.
All I/O is contained here; business logic is in the core module.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Optional

from google.cloud import firestore

from ..core.errors import duplicate_error
from ..core.models import Recipe, RecipeCreate, User, utcnow
from .environment import EnvironmentPartition
from .store import PROTECTED_USER_FIELDS, RecipeStore, RecipeTransform


logger = logging.getLogger(__name__)

# Firestore rejects batches with more writes than this.
MAX_BATCH_WRITES = 500


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        max_attempts: Transaction attempts before a contended write fails
    """

    project_id: str | None = None
    database: str | None = None
    max_attempts: int = 5


class RecipeFirestoreClient(RecipeStore):
    """Entity Store persisting users and recipes to Firestore.

    Document structure:
        users/{user_id}: { username, email, credential_hash, environment, ... }
        recipes/{recipe_id}: { owner_id, name, rating, cooking_log: [...], environment, ... }
        usernames/{env}:{sha256(username)}: { user_id }   uniqueness claim
        emails/{env}:{sha256(email)}: { user_id }         uniqueness claim

    Firestore reads are strongly consistent, so a write is visible to the
    next read without any delay.
    """

    def __init__(self, partition: EnvironmentPartition, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            partition: Environment this client reads and writes
            config: Firestore configuration
        """
        super().__init__(partition)
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _user_ref(self, user_id: str) -> firestore.DocumentReference:
        """Get reference to user document."""
        return self.client.collection("users").document(user_id)

    def _recipe_ref(self, recipe_id: str) -> firestore.DocumentReference:
        """Get reference to recipe document."""
        return self.client.collection("recipes").document(recipe_id)

    def _claim_ref(self, kind: str, value: str) -> firestore.DocumentReference:
        """Get reference to a username or email uniqueness claim.

        Keyed by digest: emails may contain '/', which Firestore reads as a path separator.
        """
        digest = hashlib.sha256(value.encode()).hexdigest()
        return self.client.collection(kind).document(self.partition.key(digest))

    def _transaction(self) -> firestore.Transaction:
        return self.client.transaction(max_attempts=self.config.max_attempts)

    def _scoped(self, collection: str) -> firestore.Query:
        """Query over a collection restricted to this partition."""
        return self.client.collection(collection).where("environment", "==", self.partition.tag)

    # ==================== User Operations ====================

    def create_user(
        self,
        username: str,
        email: str,
        credential_hash: str,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            credential_hash=credential_hash,
            api_key_hash=api_key_hash,
            display_name=display_name,
            bio=bio,
            environment=self.partition.environment,
        )
        user_ref = self._user_ref(user.id)
        username_ref = self._claim_ref("usernames", username)
        email_ref = self._claim_ref("emails", email)

        @firestore.transactional
        def _create(transaction: firestore.Transaction) -> None:
            collisions = []
            if username_ref.get(transaction=transaction).exists:
                collisions.append("username")
            if email_ref.get(transaction=transaction).exists:
                collisions.append("email")
            if collisions:
                raise duplicate_error(collisions)

            transaction.create(username_ref, {"user_id": user.id})
            transaction.create(email_ref, {"user_id": user.id})
            transaction.set(user_ref, self.partition.stamp(user.model_dump()))

        logger.info("Creating user: %s", user.id[:8])
        _create(self._transaction())
        return user

    def get_user(self, user_id: str) -> User | None:
        logger.debug("Fetching user: %s", user_id[:8])
        doc = self._user_ref(user_id).get()
        data = doc.to_dict() if doc.exists else None
        if not self.partition.contains(data):
            return None
        return User(**data)

    def _find_user(self, field_name: str, value: str) -> User | None:
        query = self._scoped("users").where(field_name, "==", value).limit(1)
        for doc in query.stream():
            return User(**doc.to_dict())
        return None

    def get_user_by_username(self, username: str) -> User | None:
        return self._find_user("username", username)

    def get_user_by_email(self, email: str) -> User | None:
        return self._find_user("email", email)

    def get_user_by_api_key_hash(self, api_key_hash: str) -> User | None:
        return self._find_user("api_key_hash", api_key_hash)

    def update_user(self, user_id: str, updates: dict[str, Any]) -> User | None:
        changes = {k: v for k, v in updates.items() if k not in PROTECTED_USER_FIELDS}
        user_ref = self._user_ref(user_id)

        @firestore.transactional
        def _update(transaction: firestore.Transaction) -> User | None:
            doc = user_ref.get(transaction=transaction)
            data = doc.to_dict() if doc.exists else None
            if not self.partition.contains(data):
                return None

            # Reads must precede writes inside a transaction.
            moved: list[tuple[str, str, str]] = []
            collisions: list[str] = []
            for kind, field_name in (("usernames", "username"), ("emails", "email")):
                new_value = changes.get(field_name)
                if new_value is None or new_value == data[field_name]:
                    continue
                if self._claim_ref(kind, new_value).get(transaction=transaction).exists:
                    collisions.append(field_name)
                moved.append((kind, data[field_name], new_value))
            if collisions:
                raise duplicate_error(collisions)

            for kind, old_value, new_value in moved:
                transaction.delete(self._claim_ref(kind, old_value))
                transaction.create(self._claim_ref(kind, new_value), {"user_id": user_id})

            user = User.model_validate({**data, **changes, "updated_at": utcnow()})
            transaction.set(user_ref, self.partition.stamp(user.model_dump()))
            return user

        logger.info("Updating user: %s", user_id[:8])
        return _update(self._transaction())

    def delete_user(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        if user is None:
            return False

        recipe_count = self._delete_owned_recipes(user_id)

        batch = self.client.batch()
        batch.delete(self._claim_ref("usernames", user.username))
        batch.delete(self._claim_ref("emails", user.email))
        batch.delete(self._user_ref(user_id))
        batch.commit()

        # Sweep recipes created by requests still in flight during the delete.
        recipe_count += self._delete_owned_recipes(user_id)

        logger.info("Deleted user %s and %d recipes", user_id[:8], recipe_count)
        return True

    def _delete_owned_recipes(self, user_id: str) -> int:
        """Delete a user's recipes in batches until none remain."""
        query = self._scoped("recipes").where("owner_id", "==", user_id).limit(MAX_BATCH_WRITES)
        deleted = 0
        while True:
            docs = list(query.stream())
            if not docs:
                return deleted
            batch = self.client.batch()
            for doc in docs:
                batch.delete(doc.reference)
            batch.commit()
            deleted += len(docs)

    # ==================== Recipe Operations ====================

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        logger.debug("Fetching recipe: %s", recipe_id[:8])
        doc = self._recipe_ref(recipe_id).get()
        data = doc.to_dict() if doc.exists else None
        if not self.partition.contains(data):
            return None
        return Recipe(**data)

    def _query_recipes(self, owner_id: str | None) -> list[Recipe]:
        query = self._scoped("recipes").where("owner_id", "==", owner_id)
        recipes = [Recipe(**doc.to_dict()) for doc in query.stream()]
        logger.debug("Found %d recipes", len(recipes))
        return recipes

    def create_recipe(self, fields: RecipeCreate, owner_id: str | None) -> Recipe:
        recipe = Recipe(
            **fields.model_dump(),
            owner_id=owner_id,
            rating=0,
            cooking_log=[],
            environment=self.partition.environment,
        )
        logger.info("Creating recipe %s for %s", recipe.id[:8], (owner_id or "seed")[:8])
        self._recipe_ref(recipe.id).set(self.partition.stamp(recipe.model_dump()))
        return recipe

    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        ref = self._recipe_ref(recipe_id)

        @firestore.transactional
        def _delete(transaction: firestore.Transaction) -> bool:
            doc = ref.get(transaction=transaction)
            data = doc.to_dict() if doc.exists else None
            if not self.partition.contains(data) or not self._owns(data, owner_id):
                return False
            transaction.delete(ref)
            return True

        deleted = _delete(self._transaction())
        if deleted:
            logger.info("Deleted recipe: %s", recipe_id[:8])
        return deleted

    def transform_recipe(self, recipe_id: str, owner_id: str, transform: RecipeTransform) -> Recipe | None:
        ref = self._recipe_ref(recipe_id)

        @firestore.transactional
        def _apply(transaction: firestore.Transaction) -> Recipe | None:
            doc = ref.get(transaction=transaction)
            data = doc.to_dict() if doc.exists else None
            if not self.partition.contains(data) or not self._owns(data, owner_id):
                return None
            updated = transform(Recipe(**data))
            transaction.set(ref, self.partition.stamp(updated.model_dump()))
            return updated

        return _apply(self._transaction())
