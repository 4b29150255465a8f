"""Core infrastructure subpackage.

This package contains the main KubeVault facade class.
"""

from kube_vault.core.kubevault import KubeVault

__all__ = [
    "KubeVault",
]
