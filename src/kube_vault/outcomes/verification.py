"""Secret verification against Vault.

Checks that every secret the manifests need exists in Vault, and that
every specifically-referenced key is present, collecting all gaps before
reporting.
"""

from functools import partial

from icecream import ic
from rich.markup import escape

from kube_vault import console
from kube_vault.exceptions import MissingKeyError, MissingSecretError, StoreAccessError
from kube_vault.manifests.requirements import RequirementSet
from kube_vault.models import ALL_KEYS, PathMapping, Report, ResolvedSecret
from kube_vault.outcomes.batch import DEFAULT_WORKERS, map_in_order, merge_reports
from kube_vault.resolution import resolve
from kube_vault.vault.client import SecretStore


def check_secret(store: SecretStore, secret: ResolvedSecret) -> Report:
    """Verify one resolved secret.

    Args:
        store: The secret store to query.
        secret: The secret and its Vault location.

    Returns:
        A report holding what was verified and what is missing.

    """
    report = Report()
    path = secret.vault_path
    try:
        if not store.exists(path):
            report.fail(MissingSecretError(secret.secret_name, str(path)))
            return report
        if secret.keys is ALL_KEYS:
            report.verified.append(f"{secret.secret_name} maps to {path}")
            return report
        for key in sorted(secret.keys):
            if store.exists(path, key):
                report.verified.append(f"{secret.secret_name}:{key} maps to {path.join(key)}")
            else:
                report.fail(MissingKeyError(secret.secret_name, key, str(path)))
    except StoreAccessError as err:
        report.fail(err)
    return report


def print_report(report: Report, title: str, total: int) -> None:
    """Print every finding of a report followed by a summary panel.

    Args:
        report: The report to print.
        title: Title of the summary panel.
        total: Number of secrets that were checked.

    """
    for message in report.verified:
        console.success(f"Verified {escape(message)}")
    for failure in report.failures:
        console.error(escape(str(failure)))
    console.summary_panel(
        title,
        {
            "Secrets": str(total),
            "Verified": str(len(report.verified)),
            "Failures": str(len(report.failures)),
            "Result": "PASS" if report.ok else "FAIL",
        },
        passed=report.ok,
    )


def verify_secrets(
    store: SecretStore,
    requirements: RequirementSet,
    strategy: PathMapping,
    *,
    workers: int = DEFAULT_WORKERS,
) -> Report:
    """Verify every requirement against the store.

    All unresolved mappings are collected first; if there are any, the
    store is not queried at all. Otherwise every secret is checked and
    all findings are merged in requirement order.

    Args:
        store: The secret store to query.
        requirements: The requirements found in the manifests.
        strategy: The active resolution strategy.
        workers: Maximum number of concurrent store queries.

    Returns:
        The aggregated report; ``report.ok`` is the overall verdict.

    """
    resolution = resolve(requirements, strategy)
    if not resolution.complete:
        report = Report()
        for err in resolution.unresolved:
            report.fail(err)
        return report

    report = merge_reports(map_in_order(partial(check_secret, store), resolution.resolved, workers))
    ic(report)
    return report
