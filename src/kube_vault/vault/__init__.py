"""Vault gateway subpackage.

This package contains the KV v2 HTTP client and the authentication
backends it logs in with.
"""

from kube_vault.vault.auth import AppRoleAuth, AuthBackend, Credentials, GitHubAuth, TokenAuth, backend_from_env
from kube_vault.vault.client import SecretStore, VaultClient

__all__ = [
    # auth
    "AuthBackend",
    "AppRoleAuth",
    "Credentials",
    "GitHubAuth",
    "TokenAuth",
    "backend_from_env",
    # client
    "SecretStore",
    "VaultClient",
]
