"""Tests for environment resolution and partition helpers."""

import pytest

from recipekitchen.core.models import Environment
from recipekitchen.shell.environment import EnvironmentPartition, resolve_environment


class TestResolveEnvironment:
    """Tests for resolve_environment."""

    def test_default_is_development(self):
        assert resolve_environment({}) == Environment.DEVELOPMENT

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("test", Environment.TEST),
            ("testing", Environment.TEST),
            ("dev", Environment.DEVELOPMENT),
            ("production", Environment.PRODUCTION),
            ("PROD", Environment.PRODUCTION),
            (" production ", Environment.PRODUCTION),
        ],
    )
    def test_aliases(self, value, expected):
        assert resolve_environment({"RECIPEKITCHEN_ENV": value}) == expected

    def test_node_env_fallback(self):
        """NODE_ENV is read when RECIPEKITCHEN_ENV is unset."""
        assert resolve_environment({"NODE_ENV": "test"}) == Environment.TEST

    def test_own_variable_wins(self):
        environ = {"RECIPEKITCHEN_ENV": "production", "NODE_ENV": "test"}
        assert resolve_environment(environ) == Environment.PRODUCTION

    def test_unknown_value_falls_back(self):
        assert resolve_environment({"RECIPEKITCHEN_ENV": "staging"}) == Environment.DEVELOPMENT


class TestEnvironmentPartition:
    """Tests for EnvironmentPartition."""

    def test_stamp(self):
        partition = EnvironmentPartition(Environment.TEST)
        assert partition.stamp({"name": "x"}) == {"name": "x", "environment": "test"}

    def test_stamp_overrides_caller_value(self):
        """A caller-supplied tag is replaced, never trusted."""
        partition = EnvironmentPartition(Environment.TEST)
        assert partition.stamp({"environment": "production"})["environment"] == "test"

    def test_contains(self):
        partition = EnvironmentPartition(Environment.TEST)
        assert partition.contains({"environment": "test"})
        assert not partition.contains({"environment": "production"})
        assert not partition.contains({})
        assert not partition.contains(None)

    def test_key(self):
        assert EnvironmentPartition(Environment.PRODUCTION).key("chef") == "production:chef"

    def test_from_env(self):
        partition = EnvironmentPartition.from_env({"NODE_ENV": "test"})
        assert partition.environment == Environment.TEST
