"""Outcome subpackage.

This package contains the consumers of a requirement set: listing,
verification against Vault, Secret generation and mapping export.
"""

from kube_vault.outcomes.exporting import export_mappings
from kube_vault.outcomes.generation import build_secret_manifest, generate_secrets, render_manifests
from kube_vault.outcomes.listing import format_requirements, list_secrets
from kube_vault.outcomes.verification import check_secret, print_report, verify_secrets

__all__ = [
    # listing
    "format_requirements",
    "list_secrets",
    # verification
    "check_secret",
    "print_report",
    "verify_secrets",
    # generation
    "build_secret_manifest",
    "generate_secrets",
    "render_manifests",
    # exporting
    "export_mappings",
]
