"""Requirement listing.

Prints the secrets a set of manifests depends on, without touching Vault.
"""

from rich.markup import escape

from kube_vault import console
from kube_vault.manifests.requirements import RequirementSet
from kube_vault.models import PathMapping, describe_keys
from kube_vault.resolution import Resolution, resolve


def format_requirements(requirements: RequirementSet, resolution: Resolution | None = None) -> list[str]:
    """Render the requirement set as plain text lines.

    Args:
        requirements: The requirements to describe.
        resolution: Optional resolution used to show each secret's Vault path.

    Returns:
        Output lines, one block per secret in first-seen order.

    """
    paths: dict[str, str] = {}
    if resolution is not None:
        paths = {secret.secret_name: str(secret.vault_path) for secret in resolution.resolved}

    lines: list[str] = []
    for requirement in requirements:
        lines.append(requirement.secret_name)
        lines.append(f"  usage: {', '.join(kind.value for kind in requirement.kinds)}")
        lines.append(f"  keys: {describe_keys(requirement.keys)}")
        if resolution is not None:
            lines.append(f"  vault: {paths.get(requirement.secret_name, '(no mapping)')}")
        for source in requirement.sources:
            lines.append(f"  used by: {source}")
        for mount in requirement.mounts:
            lines.append(f"  mounted by: container={mount.container} volume={mount.volume} path={mount.mount_path}")
            for usage in mount.usages:
                lines.append(f"    referenced in: {usage}")
    return lines


def list_secrets(requirements: RequirementSet, strategy: PathMapping | None = None) -> None:
    """Print the requirement set to stdout.

    Secrets without a mapping are reported as information only.

    Args:
        requirements: The requirements to print.
        strategy: Optional strategy used to show each secret's Vault path.

    """
    if not requirements:
        console.info("No secret references found")
        return

    resolution = resolve(requirements, strategy) if strategy is not None else None
    for line in format_requirements(requirements, resolution):
        console.emit(line)

    if resolution is not None:
        for err in resolution.unresolved:
            console.info(escape(str(err)))
    console.success(f"Found {len(requirements)} secret(s)")
