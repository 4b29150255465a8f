"""kube-vault: Manage Kubernetes secrets with Vault as the source of truth.

This package scans Kubernetes manifests for the secrets their workloads
use, checks those secrets exist in a Vault KV v2 engine, and renders
ready-to-apply Secret manifests from Vault.

Example usage:
    from kube_vault import KubeVault, build_strategy

    with open("rendered.yaml", "rb") as stream:
        result = KubeVault.scan(stream)

    strategy = build_strategy(mappings=(), path="kv:/apps/my-app")
    with KubeVault() as kube_vault:
        report = kube_vault.verify(result.requirements, strategy)
"""

__version__ = "0.3.0"

from kube_vault.cli import cli
from kube_vault.core.kubevault import KubeVault
from kube_vault.exceptions import (
    ConfigurationError,
    ExtractionWarning,
    KubeVaultError,
    ManifestDecodeError,
    MissingKeyError,
    MissingSecretError,
    SecretNotFoundError,
    StoreAccessError,
    UnresolvedMappingError,
)
from kube_vault.resolution import build_strategy

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "KubeVault",
    "build_strategy",
    # Exceptions
    "KubeVaultError",
    "ConfigurationError",
    "ExtractionWarning",
    "ManifestDecodeError",
    "MissingKeyError",
    "MissingSecretError",
    "SecretNotFoundError",
    "StoreAccessError",
    "UnresolvedMappingError",
]
