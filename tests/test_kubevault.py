"""Tests for core/kubevault.py module."""

import io
from unittest.mock import MagicMock, patch

import yaml

from kube_vault.core import kubevault
from kube_vault.core.kubevault import KubeVault
from kube_vault.manifests.requirements import RequirementSet
from kube_vault.models import VaultPath
from kube_vault.resolution import build_strategy
from kube_vault.vault.client import VaultClient

STORE_SECRETS = {
    "kv:/apps/x/db-secrets": {"username": "app", "password": "s3cret"},
    "kv:/apps/x/creds": {"token": "t"},
    "kv:/apps/x/tls-certs": {"tls.crt": "CERT"},
}


class TestKubeVaultInit:
    """Tests for KubeVault initialization."""

    def test_store_is_built_lazily(self):
        """Test the Vault client is only created on first use."""
        with patch.object(kubevault.VaultClient, "from_env") as mock_from_env:
            kube_vault = KubeVault()
            mock_from_env.assert_not_called()

            assert kube_vault.store is mock_from_env.return_value
            assert kube_vault.store is mock_from_env.return_value
            mock_from_env.assert_called_once_with()

    def test_owned_client_is_closed(self):
        """Test a client built from the environment is closed on exit."""
        client = MagicMock(spec=VaultClient)
        with patch.object(kubevault.VaultClient, "from_env", return_value=client):
            with KubeVault() as kube_vault:
                _ = kube_vault.store
        client.close.assert_called_once()

    def test_injected_store_is_not_closed(self):
        """Test a store passed in is left open."""
        client = MagicMock(spec=VaultClient)
        with KubeVault(store=client):
            pass
        client.close.assert_not_called()

    def test_repr(self, fake_store):
        """Test repr shows workers."""
        assert "workers=2" in repr(KubeVault(store=fake_store(), workers=2))


class TestKubeVaultScan:
    """Tests for scanning through the facade."""

    def test_scan_reports_skipped_items(self):
        """Test skipped documents and references are summarized."""
        text = "key: [unclosed\n---\nkind: Pod\nspec:\n  containers:\n    - envFrom:\n        - secretRef: {}\n"

        with patch.object(kubevault.console, "warning") as mock_warning:
            result = KubeVault.scan(io.BytesIO(text.encode()))

        assert len(result.requirements) == 0
        assert "Skipped 1 document(s) and 1 reference(s)" in mock_warning.call_args[0][0]


class TestKubeVaultVerify:
    """Tests for verify through the facade."""

    def test_no_requirements_needs_no_store(self):
        """Test an empty requirement set never builds a Vault client."""
        with patch.object(kubevault.VaultClient, "from_env") as mock_from_env:
            report = KubeVault().verify(RequirementSet(), build_strategy((), "kv:/apps/x"))

        assert report.ok
        mock_from_env.assert_not_called()

    def test_verify(self, fake_store, scan_text, sample_manifests):
        """Test verification against the store."""
        store = fake_store(secrets=STORE_SECRETS)
        requirements = scan_text(sample_manifests).requirements

        report = KubeVault(store=store).verify(requirements, build_strategy((), "kv:/apps/x"))

        assert report.ok
        assert len(report.verified) == 3


class TestKubeVaultGenerate:
    """Tests for generate through the facade."""

    def test_generate_yaml(self, fake_store, scan_text, sample_manifests):
        """Test a YAML stream with one Secret per requirement is returned."""
        store = fake_store(secrets=STORE_SECRETS)
        requirements = scan_text(sample_manifests).requirements

        manifests = KubeVault(store=store).generate(requirements, build_strategy((), "kv:/apps/x"), "prod")
        documents = list(yaml.safe_load_all(manifests))

        assert [doc["metadata"]["name"] for doc in documents] == ["db-secrets", "creds", "tls-certs"]
        assert all(doc["kind"] == "Secret" for doc in documents)

    def test_generate_failure(self, fake_store, scan_text, db_pod):
        """Test nothing is rendered when a secret is missing."""
        requirements = scan_text(db_pod).requirements

        manifests = KubeVault(store=fake_store()).generate(requirements, build_strategy((), "kv:/apps/x"), "prod")

        assert manifests is None

    def test_generate_nothing(self, fake_store):
        """Test an empty requirement set renders an empty stream."""
        store = fake_store()
        assert KubeVault(store=store).generate(RequirementSet(), build_strategy((), "kv:/a"), "prod") == ""
        assert store.calls == []


class TestKubeVaultExport:
    """Tests for export through the facade."""

    def test_export(self, fake_store):
        """Test mappings for a folder are returned."""
        store = fake_store(folders={"kv:/apps/x": ["creds"]})
        assert KubeVault(store=store).export(VaultPath.parse("kv:/apps/x")) == ["creds=kv:/apps/x/creds"]
