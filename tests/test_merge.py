"""Tests for secrets/merge.py module."""

from unittest.mock import MagicMock

import pytest
from conftest import cluster_state, make_spec

from asecret_sync.exceptions import GeneratorNotFoundError, SecretValidationError
from asecret_sync.models import ClusterSecretState, VaultSecretState
from asecret_sync.secrets.merge import merge_secret_data, prune_unmanaged_keys

NO_VAULT = VaultSecretState(exists=False)
NO_CLUSTER = ClusterSecretState(exists=False)


def no_generator(name: str) -> str:
    raise AssertionError(f"generator {name} should not be called")


class TestPriority:
    """Tests for source precedence."""

    def test_vault_wins_over_cluster(self):
        """Test a key held by both stores takes the vault value."""
        spec = make_spec()
        vault = VaultSecretState(exists=True, values={"password": b"from-vault"})
        cluster = cluster_state({"password": b"from-cluster", "extra": b"kept"})

        data = merge_secret_data(spec, vault, cluster, no_generator)

        assert data == {"password": b"from-vault", "extra": b"kept"}

    def test_declared_value_never_overwrites(self):
        """Test a declared value does not replace a stored value."""
        spec = make_spec(data={"username": {"value": "declared"}, "password": {"generatorRef": {"name": "gen"}}})
        vault = VaultSecretState(exists=True, values={"username": b"stored"})
        cluster = cluster_state({"password": b"cluster-password"})

        data = merge_secret_data(spec, vault, cluster, no_generator)

        assert data == {"username": b"stored", "password": b"cluster-password"}

    def test_absent_vault_ignored(self):
        """Test values of a missing vault secret are not used."""
        spec = make_spec()
        vault = VaultSecretState(exists=False, values={"stale": b"x"})

        assert merge_secret_data(spec, vault, NO_CLUSTER, no_generator) == {}

    def test_states_not_modified(self):
        """Test merging does not mutate the fetched states."""
        spec = make_spec(data={"new": {"value": "v"}})
        vault = VaultSecretState(exists=True, values={"a": b"1"})
        cluster = cluster_state({"b": b"2"})

        merge_secret_data(spec, vault, cluster, no_generator)

        assert vault.values == {"a": b"1"}
        assert cluster.values == {"b": b"2"}


class TestDeclaredData:
    """Tests for resolution of declared keys."""

    def test_static_value(self):
        """Test a static value fills a missing key."""
        spec = make_spec(data={"username": {"value": "admin"}})

        assert merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator) == {"username": b"admin"}

    def test_generated_value(self):
        """Test a generator fills a missing key."""
        spec = make_spec(data={"password": {"generatorRef": {"name": "gen-12"}}})
        generate = MagicMock(return_value="x" * 12)

        data = merge_secret_data(spec, NO_VAULT, NO_CLUSTER, generate)

        assert data == {"password": b"x" * 12}
        generate.assert_called_once_with("gen-12")

    def test_static_value_preferred_over_generator(self):
        """Test a non-empty static value is used before the generator."""
        spec = make_spec(data={"token": {"value": "fixed", "generatorRef": {"name": "gen"}}})

        assert merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator) == {"token": b"fixed"}

    def test_empty_source_is_noop(self):
        """Test a key with neither value nor generator stays absent."""
        spec = make_spec(data={"optional": {}})

        assert merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator) == {}

    def test_import_only_key_never_created(self):
        """Test an import-only key is not invented when absent from both stores."""
        spec = make_spec(data={"api-key": {"value": "default", "onlyImportRemote": True}})

        assert merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator) == {}

    def test_import_only_key_read_from_vault(self):
        """Test an import-only key is still imported from the vault."""
        spec = make_spec(data={"api-key": {"onlyImportRemote": True}})
        vault = VaultSecretState(exists=True, values={"api-key": b"remote"})

        assert merge_secret_data(spec, vault, NO_CLUSTER, no_generator) == {"api-key": b"remote"}

    def test_generator_failure_aborts_merge(self):
        """Test a missing generator fails the whole merge."""
        spec = make_spec(data={"username": {"value": "admin"}, "password": {"generatorRef": {"name": "missing"}}})
        generate = MagicMock(side_effect=GeneratorNotFoundError("missing"))

        with pytest.raises(GeneratorNotFoundError):
            merge_secret_data(spec, NO_VAULT, NO_CLUSTER, generate)


class TestOnlyImportRemote:
    """Tests for spec-level import-only mode."""

    def test_imports_vault_exactly(self):
        """Test the result is exactly the vault values, ignoring declared data."""
        spec = make_spec(onlyImportRemote=True, data={"unrelated": {"value": "x"}})
        vault = VaultSecretState(exists=True, values={"a": b"1", "b": b"2"})
        cluster = cluster_state({"c": b"3"})

        assert merge_secret_data(spec, vault, cluster, no_generator) == {"a": b"1", "b": b"2"}

    def test_empty_without_vault(self):
        """Test the result is empty when the vault secret is missing."""
        spec = make_spec(onlyImportRemote=True, data={"a": {"value": "1"}})
        cluster = cluster_state({"c": b"3"})

        assert merge_secret_data(spec, NO_VAULT, cluster, no_generator) == {}


class TestPruning:
    """Tests for removal of undeclared keys."""

    def test_prunes_cluster_leftovers(self):
        """Test an undeclared cluster key is removed."""
        spec = make_spec(data={"username": {"value": "admin"}})
        cluster = cluster_state({"username": b"admin", "old": b"x"})

        data = merge_secret_data(spec, NO_VAULT, cluster, no_generator, remove_remote_keys=True)

        assert data == {"username": b"admin"}

    def test_pruning_disabled_keeps_keys(self):
        """Test undeclared keys survive when pruning is off."""
        spec = make_spec(data={"username": {"value": "admin"}})
        cluster = cluster_state({"username": b"admin", "old": b"x"})

        data = merge_secret_data(spec, NO_VAULT, cluster, no_generator)

        assert data == {"username": b"admin", "old": b"x"}

    def test_pruned_keys_subset_of_declared(self):
        """Test the pruned result only holds declared keys."""
        spec = make_spec(data={"a": {"value": "1"}, "b": {"onlyImportRemote": True}})
        vault = VaultSecretState(exists=True, values={"b": b"2", "stray": b"3"})
        cluster = cluster_state({"old": b"4"})

        data = merge_secret_data(spec, vault, cluster, no_generator, remove_remote_keys=True)

        assert set(data) <= set(spec.data)
        assert data == {"a": b"1", "b": b"2"}

    def test_prune_in_place(self):
        """Test prune_unmanaged_keys modifies the mapping in place."""
        spec = make_spec(data={"keep": {}})
        data = {"keep": b"1", "drop": b"2"}

        prune_unmanaged_keys(spec, data)

        assert data == {"keep": b"1"}


class TestBinaryCardinality:
    """Tests for the single-key rule of binary secrets."""

    def test_two_declared_keys_rejected(self):
        """Test two resolvable keys fail validation."""
        spec = make_spec(valueType="binary", data={"tls.crt": {"value": "a"}, "tls.key": {"value": "b"}})

        with pytest.raises(SecretValidationError):
            merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator)

    def test_single_key_accepted(self):
        """Test one key is a valid binary value set."""
        spec = make_spec(valueType="binary", data={"tls.crt": {"value": "a"}})

        assert merge_secret_data(spec, NO_VAULT, NO_CLUSTER, no_generator) == {"tls.crt": b"a"}

    def test_stored_keys_count(self):
        """Test keys coming from the stores count towards the limit."""
        spec = make_spec(valueType="binary", data={"tls.crt": {"value": "a"}})
        cluster = cluster_state({"leftover": b"x"})

        with pytest.raises(SecretValidationError):
            merge_secret_data(spec, NO_VAULT, cluster, no_generator)
