"""Mapping export.

Turns the secrets stored below a Vault path into ready-to-use ``-m``
arguments, as a starting point for an explicit mapping.
"""

from kube_vault.models import VaultPath
from kube_vault.vault.client import SecretStore


def export_mappings(store: SecretStore, base: VaultPath) -> list[str]:
    """List ``name=engine:/base/name`` mappings for every secret below ``base``.

    Sub-folders (names ending in ``/``) are skipped.

    Args:
        store: The secret store to list.
        base: The folder to list.

    Returns:
        Mapping arguments, in the order Vault lists them.

    """
    return [f"{name}={base.join(name)}" for name in store.list_keys(base) if not name.endswith("/")]
