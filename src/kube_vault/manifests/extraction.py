"""Secret reference extraction.

Workload kinds nest their pod template at different depths (a bare Pod,
a Deployment's ``spec.template``, a CronJob's
``spec.jobTemplate.spec.template``, pod specs wrapped by custom resources).
Instead of knowing every schema, this module searches each document for
container-shaped objects and for pod specs carrying volumes, then reads
secret references out of those, along with the containers that mount each
secret volume.
"""

from collections.abc import Iterator
from typing import Any

from icecream import ic
from rich.markup import escape

from kube_vault import console
from kube_vault.exceptions import ExtractionWarning
from kube_vault.models import ALL_KEYS, Keys, ManifestDocument, ReferenceKind, SecretReference, VolumeMount
from kube_vault.naming import validate_k8s_name

# Deepest known pod spec (CronJob) puts containers at depth 7; leave room for CRD wrappers
MAX_DEPTH = 16

_CONTAINER_LISTS = frozenset({"containers", "initContainers", "ephemeralContainers"})


def _is_container(node: dict[str, Any]) -> bool:
    return isinstance(node.get("env"), list) or isinstance(node.get("envFrom"), list)


def find_containers(node: Any, depth: int = 0) -> Iterator[dict[str, Any]]:
    """Yield every container-shaped mapping reachable from ``node``.

    A mapping counts as a container when it sits in a ``containers``,
    ``initContainers`` or ``ephemeralContainers`` sequence, or when it
    carries an ``env``/``envFrom`` sequence. Containers are not searched
    any further once found.

    Args:
        node: Any part of a decoded document.
        depth: Current nesting depth; the search stops past MAX_DEPTH.

    Yields:
        Container mappings, in document order.

    """
    if depth > MAX_DEPTH:
        return
    if isinstance(node, dict):
        if _is_container(node):
            yield node
            return
        for key, value in node.items():
            if key in _CONTAINER_LISTS and isinstance(value, list):
                yield from (item for item in value if isinstance(item, dict))
            else:
                yield from find_containers(value, depth + 1)
    elif isinstance(node, list):
        for item in node:
            yield from find_containers(item, depth + 1)


def find_secret_volumes(node: Any, depth: int = 0) -> Iterator[dict[str, Any]]:
    """Yield every mapping that has a ``secret`` source block.

    This covers pod volumes (``secret.secretName``) as well as projected
    volume sources (``secret.name``).

    Args:
        node: Any part of a decoded document.
        depth: Current nesting depth; the search stops past MAX_DEPTH.

    Yields:
        Volume (or volume source) mappings, in document order.

    """
    if depth > MAX_DEPTH:
        return
    if isinstance(node, dict):
        if isinstance(node.get("secret"), dict):
            yield node
            return
        for value in node.values():
            yield from find_secret_volumes(value, depth + 1)
    elif isinstance(node, list):
        for item in node:
            yield from find_secret_volumes(item, depth + 1)


def find_pod_specs(node: Any, depth: int = 0) -> Iterator[dict[str, Any]]:
    """Yield every mapping that declares a ``volumes`` sequence.

    Such a mapping is treated as a pod spec: its containers are the ones
    that can mount its volumes.

    Args:
        node: Any part of a decoded document.
        depth: Current nesting depth; the search stops past MAX_DEPTH.

    Yields:
        Pod spec mappings, in document order.

    """
    if depth > MAX_DEPTH:
        return
    if isinstance(node, dict):
        if isinstance(node.get("volumes"), list):
            yield node
            return
        for value in node.values():
            yield from find_pod_specs(value, depth + 1)
    elif isinstance(node, list):
        for item in node:
            yield from find_pod_specs(item, depth + 1)


def _strings(node: Any, depth: int = 0) -> Iterator[str]:
    if depth > MAX_DEPTH:
        return
    if isinstance(node, str):
        yield node
    elif isinstance(node, dict):
        for key, value in node.items():
            if key != "volumeMounts":
                yield from _strings(value, depth + 1)
    elif isinstance(node, list):
        for item in node:
            yield from _strings(item, depth + 1)


def find_volume_mounts(pod_spec: dict[str, Any], volume_name: str) -> tuple[VolumeMount, ...]:
    """Find the containers of a pod spec that mount a volume.

    For each mount, the container's values that refer to a file below the
    mount path (``--cert=/etc/tls/tls.crt``) are kept as usages.

    Args:
        pod_spec: The mapping holding the ``volumes`` sequence.
        volume_name: Name of the volume to look for.

    Returns:
        One VolumeMount per matching ``volumeMounts`` entry, in container order.

    """
    mounts: list[VolumeMount] = []
    for container in find_containers(pod_spec):
        entries = container.get("volumeMounts")
        if not isinstance(entries, list):
            continue
        container_name = str(container.get("name") or container.get("image") or "?")
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("name") != volume_name:
                continue
            mount_path = entry.get("mountPath")
            if not isinstance(mount_path, str) or not mount_path:
                continue
            prefix = mount_path.rstrip("/") + "/"
            usages = tuple(dict.fromkeys(value for value in _strings(container) if prefix in value))
            mounts.append(VolumeMount(container_name, volume_name, mount_path, usages))
    return tuple(mounts)


def _secret_name(value: Any, source: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ExtractionWarning(source, f"secret name {value!r} is empty or not a string")
    name = value.strip()
    valid = validate_k8s_name(name)
    if valid is not True:
        raise ExtractionWarning(source, f"secret name '{name}' is not a valid name: {valid}")
    return name


def _env_key_reference(entry: Any, source: str) -> SecretReference | None:
    if not isinstance(entry, dict):
        return None
    value_from = entry.get("valueFrom")
    if not isinstance(value_from, dict) or "secretKeyRef" not in value_from:
        return None
    ref = value_from["secretKeyRef"]
    if not isinstance(ref, dict):
        raise ExtractionWarning(source, f"secretKeyRef of env '{entry.get('name')}' is not a mapping")
    name = _secret_name(ref.get("name"), source)
    key = ref.get("key")
    if not isinstance(key, str) or not key:
        raise ExtractionWarning(source, f"secretKeyRef for secret '{name}' has no key")
    return SecretReference(name, ReferenceKind.ENV_KEY, frozenset({key}), source)


def _env_all_reference(entry: Any, source: str) -> SecretReference | None:
    if not isinstance(entry, dict) or "secretRef" not in entry:
        return None
    ref = entry["secretRef"]
    if not isinstance(ref, dict):
        raise ExtractionWarning(source, "envFrom secretRef is not a mapping")
    name = _secret_name(ref.get("name"), source)
    return SecretReference(name, ReferenceKind.ENV_ALL, ALL_KEYS, source)


def _volume_keys(items: Any, source: str) -> Keys:
    if not isinstance(items, list) or not items:
        return ALL_KEYS
    keys = set()
    for item in items:
        key = item.get("key") if isinstance(item, dict) else None
        if not isinstance(key, str) or not key:
            raise ExtractionWarning(source, f"secret volume item {item!r} has no key")
        keys.add(key)
    return frozenset(keys)


def _volume_reference(volume: dict[str, Any], source: str, mounts: tuple[VolumeMount, ...]) -> SecretReference:
    secret = volume["secret"]
    name = _secret_name(secret.get("secretName", secret.get("name")), source)
    keys = _volume_keys(secret.get("items"), source)
    return SecretReference(name, ReferenceKind.VOLUME, keys, source, mounts)


def _report(warning: ExtractionWarning, warnings: list[ExtractionWarning] | None) -> None:
    console.warning(f"Skipping secret reference in {escape(str(warning))}")
    if warnings is not None:
        warnings.append(warning)


def extract_references(
    document: ManifestDocument,
    warnings: list[ExtractionWarning] | None = None,
) -> Iterator[SecretReference]:
    """Yield every secret reference found in a document.

    Malformed references are reported and skipped; they never stop the
    extraction of the remaining references.

    Args:
        document: The decoded document to search.
        warnings: Optional list collecting skipped references.

    Yields:
        SecretReference objects, containers first, then volumes.

    """
    for container in find_containers(document.body):
        container_name = container.get("name") or container.get("image") or "?"
        source = f"{document.label} container={container_name}"

        env = container.get("env")
        for entry in env if isinstance(env, list) else []:
            try:
                reference = _env_key_reference(entry, source)
            except ExtractionWarning as warning:
                _report(warning, warnings)
                continue
            if reference is not None:
                ic(reference)
                yield reference

        env_from = container.get("envFrom")
        for entry in env_from if isinstance(env_from, list) else []:
            try:
                reference = _env_all_reference(entry, source)
            except ExtractionWarning as warning:
                _report(warning, warnings)
                continue
            if reference is not None:
                ic(reference)
                yield reference

    for pod_spec in find_pod_specs(document.body):
        for volume in pod_spec["volumes"]:
            if not isinstance(volume, dict):
                continue
            name = volume.get("name")
            volume_name = name if isinstance(name, str) else ""
            source = f"{document.label} volume={volume_name or '?'}"
            mounts = find_volume_mounts(pod_spec, volume_name) if volume_name else ()
            for secret_volume in find_secret_volumes(volume):
                try:
                    reference = _volume_reference(secret_volume, source, mounts)
                except ExtractionWarning as warning:
                    _report(warning, warnings)
                    continue
                ic(reference)
                yield reference
