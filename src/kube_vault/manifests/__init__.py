"""Manifest scanning subpackage.

This package contains modules for decoding YAML streams, extracting
secret references from workloads, and folding them into requirements.
"""

from kube_vault.manifests.decoding import iter_documents, split_documents
from kube_vault.manifests.extraction import (
    extract_references,
    find_containers,
    find_pod_specs,
    find_secret_volumes,
    find_volume_mounts,
)
from kube_vault.manifests.requirements import RequirementSet, ScanResult, scan

__all__ = [
    # decoding
    "iter_documents",
    "split_documents",
    # extraction
    "extract_references",
    "find_containers",
    "find_pod_specs",
    "find_secret_volumes",
    "find_volume_mounts",
    # requirements
    "RequirementSet",
    "ScanResult",
    "scan",
]
