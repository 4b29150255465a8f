#!/usr/bin/env python
"""Command-line interface for kube-vault.

This module provides the main CLI entry point for the kube-vault tool,
handling command-line argument parsing and orchestrating the list, verify,
generate and export operations. Manifests are always read from stdin, e.g.
``helm template . | kube-vault verify -p kv:/apps/my-app``.
"""

import functools
import sys
from collections.abc import Callable
from typing import Any

import click
from dotenv import find_dotenv, load_dotenv
from icecream import ic
from rich.markup import escape

from kube_vault import __version__, console
from kube_vault.core.kubevault import KubeVault
from kube_vault.exceptions import KubeVaultError
from kube_vault.manifests.requirements import ScanResult
from kube_vault.models import VaultPath
from kube_vault.naming import validate_k8s_name
from kube_vault.outcomes.batch import DEFAULT_WORKERS
from kube_vault.resolution import build_optional_strategy, build_strategy

mapping_option = click.option(
    "--mapping",
    "-m",
    "mappings",
    multiple=True,
    help="Maps k8s secret name to vault path (ex. my-secrets=engine-name:/apps/my-app/secrets)",
)
path_option = click.option(
    "--path",
    "-p",
    required=False,
    help="Vault path holding one secret per k8s secret name (ex. engine-name:/apps/my-app)",
)
workers_option = click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    envvar="KUBE_VAULT_WORKERS",
    help="maximum number of concurrent vault requests",
)


def _validate_namespace(ctx: click.Context, param: click.Parameter, value: str) -> str:
    result = validate_k8s_name(value)
    if result is not True:
        raise click.BadParameter(str(result))
    return value


def exit_on_error(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report kube-vault errors on the console and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except KubeVaultError as e:
            console.error(escape(str(e)))
            sys.exit(1)

    return wrapper


def read_manifests() -> ScanResult:
    """Scan the manifests piped to stdin."""
    return KubeVault.scan(click.get_binary_stream("stdin"))


@click.group(help="Manage k8s secrets with vault as the source-of-truth")
@click.version_option(__version__, "--version", "-v", message="%(version)s", help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
def cli(debug: bool) -> None:
    """Process global options shared by every command.

    Args:
        debug: Enable debug output.

    """
    if debug:
        ic.enable()
    else:
        ic.disable()

    # variables already in the environment win over the .env file
    load_dotenv(find_dotenv(usecwd=True))


@cli.command("list", help="Lists secrets accessed by a chart")
@mapping_option
@path_option
@exit_on_error
def list_command(mappings: tuple[str, ...], path: str | None) -> None:
    """List the secrets the manifests on stdin depend on.

    Args:
        mappings: Optional explicit mappings used to show vault paths.
        path: Optional convention root used to show vault paths.

    """
    strategy = build_optional_strategy(mappings, path)
    result = read_manifests()
    KubeVault.list_secrets(result.requirements, strategy)


@cli.command(help="Verify secrets used by a chart exist in vault")
@mapping_option
@path_option
@workers_option
@exit_on_error
def verify(mappings: tuple[str, ...], path: str | None, workers: int) -> None:
    """Verify every secret the manifests need exists in vault.

    Args:
        mappings: Explicit k8s-name-to-vault-path mappings.
        path: Convention root; secret names are joined below it.
        workers: Maximum number of concurrent vault requests.

    """
    strategy = build_strategy(mappings, path)
    result = read_manifests()

    with KubeVault(workers=workers) as kube_vault:
        report = kube_vault.verify(result.requirements, strategy)

    if not report.ok:
        console.error("Missing secrets in vault, exiting...")
        sys.exit(1)


@cli.command(help="Create k8s secrets from vault")
@mapping_option
@path_option
@click.option(
    "--namespace",
    "-N",
    required=True,
    callback=_validate_namespace,
    help="k8s namespace for generated secrets",
)
@workers_option
@exit_on_error
def generate(mappings: tuple[str, ...], path: str | None, namespace: str, workers: int) -> None:
    """Print Kubernetes Secret manifests populated from vault.

    Args:
        mappings: Explicit k8s-name-to-vault-path mappings.
        path: Convention root; secret names are joined below it.
        namespace: Namespace of the generated secrets.
        workers: Maximum number of concurrent vault requests.

    """
    strategy = build_strategy(mappings, path)
    result = read_manifests()

    with KubeVault(workers=workers) as kube_vault:
        manifests = kube_vault.generate(result.requirements, strategy, namespace)

    if manifests is None:
        console.error("Could not fetch every secret from vault, nothing generated")
        sys.exit(1)
    click.echo(manifests, nl=False)


@cli.command(help="Print -m mappings for every secret stored below a vault path")
@click.option("--path", "-p", required=True, help="Vault path to list (ex. engine-name:/apps/my-app)")
@exit_on_error
def export(path: str) -> None:
    """Print one mapping argument per secret stored below a vault path.

    Args:
        path: The vault folder to list.

    """
    base = VaultPath.parse(path)
    with KubeVault() as kube_vault:
        mappings = kube_vault.export(base)

    if not mappings:
        console.warning(f"No secrets found below {escape(str(base))}")
    for mapping in mappings:
        click.echo(mapping)


if __name__ == "__main__":
    cli()
