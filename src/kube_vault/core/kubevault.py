"""KubeVault facade class.

This module provides the KubeVault class which serves as the main entry point
for all operations, coordinating between manifest scanning, path resolution
and the Vault client.
"""

from collections.abc import Iterable

from icecream import ic

from kube_vault import console
from kube_vault.manifests.requirements import RequirementSet, ScanResult, scan
from kube_vault.models import PathMapping, Report, VaultPath
from kube_vault.outcomes.batch import DEFAULT_WORKERS
from kube_vault.outcomes.exporting import export_mappings
from kube_vault.outcomes.generation import generate_secrets, render_manifests
from kube_vault.outcomes.listing import list_secrets
from kube_vault.outcomes.verification import print_report, verify_secrets
from kube_vault.vault.client import SecretStore, VaultClient


class KubeVault:
    """Runs one kube-vault command against manifests and Vault.

    The Vault client is created lazily from the environment, so commands
    that never reach Vault (``list``, or any command on manifests without
    secrets) need no Vault configuration at all.

    Attributes:
        workers: Maximum number of concurrent Vault queries.

    """

    def __init__(self, *, store: SecretStore | None = None, workers: int = DEFAULT_WORKERS) -> None:
        """Initialize KubeVault.

        Args:
            store: Secret store to use instead of a VaultClient built from the environment.
            workers: Maximum number of concurrent Vault queries.

        """
        self.workers: int = workers
        self._store: SecretStore | None = store
        self._owns_store: bool = False

    def __enter__(self) -> "KubeVault":
        """Enter context manager.

        Returns:
            The KubeVault instance.

        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager and close the Vault client if we created it."""
        if self._owns_store and isinstance(self._store, VaultClient):
            self._store.close()

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"KubeVault(store={self._store!r}, workers={self.workers!r})"

    @property
    def store(self) -> SecretStore:
        """The secret store, built from the environment on first use.

        Raises:
            ConfigurationError: If VAULT_ADDR or credentials are missing.

        """
        if self._store is None:
            self._store = VaultClient.from_env()
            self._owns_store = True
            ic(self._store)
        return self._store

    @property
    def vault_addr(self) -> str | None:
        """Address of the Vault server, when the store is a VaultClient."""
        store = self.store
        return store.vault_addr if isinstance(store, VaultClient) else None

    @staticmethod
    def scan(lines: Iterable[bytes]) -> ScanResult:
        """Scan a manifest stream and summarize what was found.

        Args:
            lines: The manifest stream, line by line, as bytes.

        Returns:
            The scan result.

        """
        with console.spinner("Scanning manifests..."):
            result = scan(lines)
        console.action(
            f"Scanned {result.documents} document(s), found {len(result.requirements)} secret(s)"
        )
        skipped = len(result.decode_errors) + len(result.warnings)
        if skipped:
            console.warning(f"Skipped {len(result.decode_errors)} document(s) and {len(result.warnings)} reference(s)")
        return result

    @staticmethod
    def list_secrets(requirements: RequirementSet, strategy: PathMapping | None = None) -> None:
        """Print the requirements, with Vault paths when a strategy is given."""
        list_secrets(requirements, strategy)

    def verify(self, requirements: RequirementSet, strategy: PathMapping) -> Report:
        """Verify every requirement exists in Vault.

        Args:
            requirements: The requirements found in the manifests.
            strategy: The active resolution strategy.

        Returns:
            The aggregated report.

        """
        if not requirements:
            console.info("No secret references found, nothing to verify")
            return Report()
        with console.spinner("Verifying secrets in Vault..."):
            report = verify_secrets(self.store, requirements, strategy, workers=self.workers)
        print_report(report, "Verification", len(requirements))
        return report

    def generate(self, requirements: RequirementSet, strategy: PathMapping, namespace: str) -> str | None:
        """Build Kubernetes Secret manifests from Vault.

        Args:
            requirements: The requirements found in the manifests.
            strategy: The active resolution strategy.
            namespace: Target namespace of the generated Secrets.

        Returns:
            The YAML stream, or None if any secret could not be fully fetched.

        """
        if not requirements:
            console.info("No secret references found, nothing to generate")
            return ""
        with console.spinner("Fetching secrets from Vault..."):
            report, secrets = generate_secrets(self.store, requirements, strategy, workers=self.workers)
        print_report(report, "Generation", len(requirements))
        if not report.ok:
            return None
        console.success(f"Generated {len(secrets)} secret(s) in namespace {console.highlight(namespace)}")
        return render_manifests(secrets, namespace, self.vault_addr)

    def export(self, base: VaultPath) -> list[str]:
        """List ``-m`` mapping arguments for every secret below ``base``."""
        with console.spinner(f"Listing {base}..."):
            mappings = export_mappings(self.store, base)
        ic(mappings)
        return mappings
