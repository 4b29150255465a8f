"""Tests for models.py module."""

import pytest

from kube_vault.exceptions import ConfigurationError, MissingKeyError
from kube_vault.models import (
    ALL_KEYS,
    ReferenceKind,
    Report,
    SecretReference,
    SecretRequirement,
    VaultPath,
    VolumeMount,
    describe_keys,
    merge_keys,
)


class TestMergeKeys:
    """Tests for key set union with the all-keys marker."""

    def test_union_of_specific_keys(self):
        """Test two specific sets are unioned."""
        assert merge_keys(frozenset({"a"}), frozenset({"b"})) == frozenset({"a", "b"})

    def test_all_keys_absorbs_specific_keys(self):
        """Test ALL_KEYS wins regardless of side."""
        assert merge_keys(ALL_KEYS, frozenset({"a"})) is ALL_KEYS
        assert merge_keys(frozenset({"a"}), ALL_KEYS) is ALL_KEYS
        assert merge_keys(ALL_KEYS, ALL_KEYS) is ALL_KEYS


class TestDescribeKeys:
    """Tests for human-readable key rendering."""

    def test_all(self):
        """Test ALL_KEYS renders as 'all'."""
        assert describe_keys(ALL_KEYS) == "all"

    def test_sorted(self):
        """Test specific keys render sorted."""
        assert describe_keys(frozenset({"username", "password"})) == "password, username"


class TestSecretRequirement:
    """Tests for folding references into a requirement."""

    def test_absorb_records_kinds_and_sources_once(self):
        """Test kinds and sources are deduplicated in first-seen order."""
        requirement = SecretRequirement("db", frozenset({"a"}))
        requirement.absorb(SecretReference("db", ReferenceKind.ENV_KEY, frozenset({"a"}), "Pod/x"))
        requirement.absorb(SecretReference("db", ReferenceKind.VOLUME, frozenset({"b"}), "Pod/y"))
        requirement.absorb(SecretReference("db", ReferenceKind.ENV_KEY, frozenset({"a"}), "Pod/x"))

        assert requirement.keys == frozenset({"a", "b"})
        assert requirement.kinds == [ReferenceKind.ENV_KEY, ReferenceKind.VOLUME]
        assert requirement.sources == ["Pod/x", "Pod/y"]

    def test_absorb_merges_mounts_once(self):
        """Test mounts from several references are kept without duplicates."""
        app = VolumeMount("app", "certs", "/etc/tls")
        worker = VolumeMount("worker", "certs", "/tls")
        requirement = SecretRequirement("tls", ALL_KEYS)

        requirement.absorb(SecretReference("tls", ReferenceKind.VOLUME, ALL_KEYS, "Pod/a", (app,)))
        requirement.absorb(SecretReference("tls", ReferenceKind.VOLUME, ALL_KEYS, "Pod/b", (app, worker)))

        assert requirement.mounts == [app, worker]

    def test_absorb_env_all_widens_to_all_keys(self):
        """Test an EnvAll reference widens a keyed requirement to ALL_KEYS."""
        requirement = SecretRequirement("creds", frozenset({"token"}))
        requirement.absorb(SecretReference("creds", ReferenceKind.ENV_ALL, ALL_KEYS))
        assert requirement.keys is ALL_KEYS


class TestVaultPath:
    """Tests for VaultPath parsing and joining."""

    def test_parse(self):
        """Test engine and path are split on the first colon."""
        path = VaultPath.parse("kv:/apps/x")
        assert path.engine == "kv"
        assert path.path == "/apps/x"
        assert str(path) == "kv:/apps/x"

    @pytest.mark.parametrize("text", ["/apps/x", ":/apps/x", "kv:", "kv:/"])
    def test_parse_rejects_incomplete_paths(self, text):
        """Test a missing engine or path is a configuration error."""
        with pytest.raises(ConfigurationError):
            VaultPath.parse(text)

    def test_join(self):
        """Test join inserts exactly one separator."""
        assert str(VaultPath.parse("kv:/apps/x").join("db-secrets")) == "kv:/apps/x/db-secrets"

    def test_join_with_trailing_slash(self):
        """Test join doesn't double the separator."""
        assert str(VaultPath.parse("kv:/apps/x/").join("db-secrets")) == "kv:/apps/x/db-secrets"

    def test_paths_are_hashable_values(self):
        """Test equal paths compare and hash equal."""
        assert {VaultPath("kv", "/a"), VaultPath("kv", "/a")} == {VaultPath("kv", "/a")}


class TestReport:
    """Tests for the failure accumulator."""

    def test_ok_until_failure(self):
        """Test a report is ok until something fails."""
        report = Report()
        report.verified.append("fine")
        assert report.ok

        report.fail(MissingKeyError("creds", "password", "kv:/apps/creds"))
        assert not report.ok

    def test_extend_keeps_order(self):
        """Test extend appends findings after existing ones."""
        first = Report(verified=["a"])
        second = Report(verified=["b"], failures=[MissingKeyError("s", "k", "kv:/s")])

        first.extend(second)

        assert first.verified == ["a", "b"]
        assert len(first.failures) == 1
