"""Kubernetes Secret generation from Vault.

Fetches the data of every required secret and renders one ``v1/Secret``
per secret name. Nothing is rendered unless every fetch succeeded and every
required key is present.
"""

import base64
from functools import partial
from typing import Any

import yaml
from icecream import ic

from kube_vault.exceptions import MissingKeyError, MissingSecretError, SecretNotFoundError, StoreAccessError
from kube_vault.manifests.requirements import RequirementSet
from kube_vault.models import ALL_KEYS, PathMapping, Report, ResolvedSecret
from kube_vault.outcomes.batch import DEFAULT_WORKERS, map_in_order, merge_reports
from kube_vault.resolution import resolve
from kube_vault.vault.client import SecretStore

ANNOTATION_PREFIX = "kube-vault"


def fetch_secret(store: SecretStore, secret: ResolvedSecret) -> Report:
    """Fetch one secret's data into ``secret.values``.

    ``values`` is only set when the secret exists and holds every
    required key.

    Args:
        store: The secret store to read from.
        secret: The secret and its Vault location.

    Returns:
        A report holding what was fetched and what went wrong.

    """
    report = Report()
    path = secret.vault_path
    try:
        values = store.fetch(path)
    except SecretNotFoundError:
        report.fail(MissingSecretError(secret.secret_name, str(path)))
        return report
    except StoreAccessError as err:
        report.fail(err)
        return report

    if secret.keys is not ALL_KEYS:
        for key in sorted(secret.keys.difference(values)):
            report.fail(MissingKeyError(secret.secret_name, key, str(path)))
    if report.ok:
        secret.values = values
        report.verified.append(f"{secret.secret_name} fetched from {path} ({len(values)} key(s))")
    return report


def build_secret_manifest(secret: ResolvedSecret, namespace: str, vault_addr: str | None = None) -> dict[str, Any]:
    """Build a Kubernetes Secret document for a fetched secret.

    Args:
        secret: A secret whose values have been fetched.
        namespace: Target namespace of the Secret.
        vault_addr: Vault address recorded in the annotations, if known.

    Returns:
        The Secret as a plain dictionary.

    """
    if secret.values is None:
        raise ValueError(f"Secret '{secret.secret_name}' has not been fetched")

    annotations = {f"{ANNOTATION_PREFIX}/vault-path": str(secret.vault_path)}
    if vault_addr:
        annotations[f"{ANNOTATION_PREFIX}/vault-addr"] = vault_addr

    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": secret.secret_name,
            "namespace": namespace,
            "labels": {"app.kubernetes.io/managed-by": "kube-vault"},
            "annotations": annotations,
        },
        "type": "Opaque",
        "data": {key: base64.b64encode(value).decode("ascii") for key, value in sorted(secret.values.items())},
    }


def render_manifests(secrets: list[ResolvedSecret], namespace: str, vault_addr: str | None = None) -> str:
    """Render fetched secrets as a multi-document YAML stream."""
    documents = [build_secret_manifest(secret, namespace, vault_addr) for secret in secrets]
    return yaml.safe_dump_all(documents, sort_keys=False, default_flow_style=False, explicit_start=True)


def generate_secrets(
    store: SecretStore,
    requirements: RequirementSet,
    strategy: PathMapping,
    *,
    workers: int = DEFAULT_WORKERS,
) -> tuple[Report, list[ResolvedSecret]]:
    """Fetch the data of every requirement.

    Unresolved mappings stop the run before any fetch. Otherwise every
    secret is fetched and all failures are collected.

    Args:
        store: The secret store to read from.
        requirements: The requirements found in the manifests.
        strategy: The active resolution strategy.
        workers: Maximum number of concurrent fetches.

    Returns:
        The aggregated report and the resolved secrets, in requirement
        order. Only render the secrets when ``report.ok``.

    """
    resolution = resolve(requirements, strategy)
    if not resolution.complete:
        report = Report()
        for err in resolution.unresolved:
            report.fail(err)
        return report, []

    report = merge_reports(map_in_order(partial(fetch_secret, store), resolution.resolved, workers))
    ic(report.verified)
    return report, resolution.resolved
