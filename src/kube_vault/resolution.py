"""Secret path resolution.

This module turns command-line mapping inputs into exactly one resolution
strategy and binds every secret requirement to a Vault path under it.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from icecream import ic

from kube_vault.exceptions import ConfigurationError, UnresolvedMappingError
from kube_vault.models import (
    ConventionMapping,
    ExplicitMapping,
    PathMapping,
    ResolvedSecret,
    SecretRequirement,
    VaultPath,
)


def parse_mapping(text: str) -> tuple[str, VaultPath]:
    """Parse a ``k8sSecretName=engine:/path/to/secret`` mapping.

    Args:
        text: The raw ``-m`` argument.

    Returns:
        The Kubernetes secret name and its Vault path.

    Raises:
        ConfigurationError: If the mapping is malformed.

    """
    name, sep, vault_part = text.partition("=")
    if not sep:
        raise ConfigurationError(f"Invalid mapping (missing =): {text}")
    if not name.strip():
        raise ConfigurationError(f"Invalid mapping (empty kubernetes secret name): {text}")
    if ":" not in vault_part:
        raise ConfigurationError(f"Invalid mapping (missing vault engine): {text}. Kube secret name was {name}")
    return name.strip(), VaultPath.parse(vault_part)


def _explicit_mapping(mappings: Sequence[str]) -> ExplicitMapping:
    entries: dict[str, VaultPath] = {}
    for text in mappings:
        name, path = parse_mapping(text)
        if name in entries and entries[name] != path:
            raise ConfigurationError(f"Secret '{name}' is mapped to both {entries[name]} and {path}")
        entries[name] = path
    return ExplicitMapping(entries=entries)


def build_optional_strategy(mappings: Sequence[str], path: str | None) -> PathMapping | None:
    """Build the resolution strategy, allowing neither input to be given.

    Args:
        mappings: Raw ``-m`` arguments.
        path: Raw ``-p`` argument.

    Returns:
        The active strategy, or None when neither input is present.

    Raises:
        ConfigurationError: If both inputs are present or one is malformed.

    """
    if mappings and path:
        raise ConfigurationError("Options -m (mapping) and -p (path) are mutually exclusive; use only one")
    if mappings:
        return _explicit_mapping(mappings)
    if path:
        return ConventionMapping(base=VaultPath.parse(path))
    return None


def build_strategy(mappings: Sequence[str], path: str | None) -> PathMapping:
    """Build the resolution strategy; exactly one input must be given.

    Raises:
        ConfigurationError: If both or neither inputs are present, or one is malformed.

    """
    strategy = build_optional_strategy(mappings, path)
    if strategy is None:
        raise ConfigurationError("One of -m (mapping) or -p (path) is required")
    ic(strategy)
    return strategy


@dataclass(slots=True)
class Resolution:
    """Outcome of resolving a requirement set.

    Attributes:
        resolved: Requirements bound to a Vault path, in requirement order.
        unresolved: One error per requirement without a mapping.

    """

    resolved: list[ResolvedSecret] = field(default_factory=list)
    unresolved: list[UnresolvedMappingError] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved


def resolve_path(secret_name: str, strategy: PathMapping) -> VaultPath:
    """Resolve one secret name under a strategy.

    Raises:
        UnresolvedMappingError: If an explicit mapping has no entry for the name.

    """
    match strategy:
        case ExplicitMapping(entries=entries):
            if secret_name not in entries:
                raise UnresolvedMappingError(secret_name)
            return entries[secret_name]
        case ConventionMapping(base=base):
            return base.join(secret_name)
    raise TypeError(f"Unknown resolution strategy: {strategy!r}")


def resolve(requirements: Iterable[SecretRequirement], strategy: PathMapping) -> Resolution:
    """Bind every requirement to its Vault path.

    Unresolvable requirements are collected rather than raised, so that
    every missing mapping is reported in one go.

    Args:
        requirements: The requirements to resolve.
        strategy: The active resolution strategy.

    Returns:
        Resolution with the resolved secrets and the unresolved ones.

    """
    resolution = Resolution()
    for requirement in requirements:
        try:
            path = resolve_path(requirement.secret_name, strategy)
        except UnresolvedMappingError as err:
            resolution.unresolved.append(err)
            continue
        resolution.resolved.append(ResolvedSecret(requirement.secret_name, path, requirement.keys))
    ic(resolution)
    return resolution
