"""Data models for kube-vault.

This module provides type-safe data structures for the application,
replacing loosely-typed dictionaries with proper Python data classes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from kube_vault.exceptions import ConfigurationError, KubeVaultError


class ReferenceKind(str, Enum):
    """Ways a workload consumes a Kubernetes secret.

    Inherits from str to allow direct use in string contexts
    (e.g., list output).
    """

    ENV_KEY = "env-key"
    ENV_ALL = "env-all"
    VOLUME = "volume"


class KeyScope(Enum):
    """Marker for a reference that consumes every key of a secret."""

    ALL = "all"


ALL_KEYS = KeyScope.ALL

Keys = frozenset[str] | Literal[KeyScope.ALL]


def merge_keys(left: Keys, right: Keys) -> Keys:
    """Union two key sets; ALL_KEYS absorbs any specific set."""
    if left is ALL_KEYS or right is ALL_KEYS:
        return ALL_KEYS
    return left | right


def describe_keys(keys: Keys) -> str:
    """Render a key set for humans."""
    if keys is ALL_KEYS:
        return "all"
    return ", ".join(sorted(keys))


@dataclass(frozen=True, slots=True)
class ManifestDocument:
    """One decoded YAML document from the input stream.

    Attributes:
        index: 1-based position of the document in the stream.
        body: The decoded tree (mapping, sequence or scalar).

    """

    index: int
    body: Any

    @property
    def kind(self) -> str:
        """The top-level ``kind``, or an empty string."""
        if isinstance(self.body, dict):
            return str(self.body.get("kind") or "")
        return ""

    @property
    def name(self) -> str:
        """The ``metadata.name``, or an empty string."""
        if isinstance(self.body, dict):
            metadata = self.body.get("metadata")
            if isinstance(metadata, dict):
                return str(metadata.get("name") or "")
        return ""

    @property
    def label(self) -> str:
        """A short ``Kind/name`` label used in messages."""
        kind = self.kind or "document"
        name = self.name or f"#{self.index}"
        return f"{kind}/{name}"


@dataclass(frozen=True, slots=True)
class VolumeMount:
    """Where a container mounts a secret volume.

    Attributes:
        container: Name (or image) of the mounting container.
        volume: Name of the pod volume.
        mount_path: Directory the volume is mounted at.
        usages: Container values (env, args, command) that point below the mount path.

    """

    container: str
    volume: str
    mount_path: str
    usages: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SecretReference:
    """A single place where a manifest consumes a secret.

    Attributes:
        secret_name: The Kubernetes secret name.
        kind: How the secret is consumed.
        keys: The consumed keys, or ALL_KEYS.
        source: Human-readable location of the usage.
        mounts: For volume references, the containers mounting the volume.

    """

    secret_name: str
    kind: ReferenceKind
    keys: Keys
    source: str = ""
    mounts: tuple[VolumeMount, ...] = ()


@dataclass(slots=True)
class SecretRequirement:
    """A deduplicated need for some or all keys of one secret."""

    secret_name: str
    keys: Keys
    kinds: list[ReferenceKind] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    mounts: list[VolumeMount] = field(default_factory=list)

    def absorb(self, reference: SecretReference) -> None:
        """Merge another reference to the same secret into this requirement."""
        self.keys = merge_keys(self.keys, reference.keys)
        if reference.kind not in self.kinds:
            self.kinds.append(reference.kind)
        if reference.source and reference.source not in self.sources:
            self.sources.append(reference.source)
        self.mounts.extend(mount for mount in reference.mounts if mount not in self.mounts)


@dataclass(frozen=True, slots=True)
class VaultPath:
    """An engine-qualified location in Vault (``engine:/path``).

    Attributes:
        engine: The secret engine mount (e.g. ``kv``).
        path: The secret path inside the engine.

    """

    engine: str
    path: str

    @classmethod
    def parse(cls, text: str) -> "VaultPath":
        """Parse ``engine:/path``.

        Raises:
            ConfigurationError: If the engine or the path is missing.

        """
        engine, sep, path = text.partition(":")
        if not sep:
            raise ConfigurationError(f"Invalid vault path (missing vault engine): {text}")
        if not engine:
            raise ConfigurationError(f"Invalid vault path (empty vault engine): {text}")
        if not path.strip("/"):
            raise ConfigurationError(f"Invalid vault path (empty path): {text}")
        return cls(engine=engine, path=path)

    def join(self, name: str) -> "VaultPath":
        """Return the path of ``name`` directly below this path."""
        if self.path.endswith("/"):
            return VaultPath(self.engine, f"{self.path}{name}")
        return VaultPath(self.engine, f"{self.path}/{name}")

    def __str__(self) -> str:
        return f"{self.engine}:{self.path}"


@dataclass(frozen=True, slots=True)
class ExplicitMapping:
    """Resolution strategy backed by operator-supplied name-to-path pairs."""

    entries: dict[str, VaultPath]


@dataclass(frozen=True, slots=True)
class ConventionMapping:
    """Resolution strategy deriving every path from one base path."""

    base: VaultPath


PathMapping = ExplicitMapping | ConventionMapping


@dataclass(slots=True)
class ResolvedSecret:
    """A requirement bound to its Vault location.

    Attributes:
        secret_name: The Kubernetes secret name.
        vault_path: Where the secret lives in Vault.
        keys: The keys the manifests need, or ALL_KEYS.
        values: Fetched key/value data; only set by ``generate``.

    """

    secret_name: str
    vault_path: VaultPath
    keys: Keys
    values: dict[str, bytes] | None = None


@dataclass(slots=True)
class Report:
    """Accumulates findings across a stage instead of failing fast."""

    verified: list[str] = field(default_factory=list)
    failures: list[KubeVaultError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return not self.failures

    def fail(self, error: KubeVaultError) -> None:
        self.failures.append(error)

    def extend(self, other: "Report") -> None:
        """Append another report's findings after this one's."""
        self.verified.extend(other.verified)
        self.failures.extend(other.failures)
