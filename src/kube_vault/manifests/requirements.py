"""Requirement set construction.

Folds the secret references of a whole manifest stream into one
deduplicated, first-seen-ordered set of secret requirements.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from icecream import ic

from kube_vault.exceptions import ExtractionWarning, ManifestDecodeError
from kube_vault.manifests.decoding import iter_documents
from kube_vault.manifests.extraction import extract_references
from kube_vault.models import SecretReference, SecretRequirement


class RequirementSet:
    """Secret requirements keyed uniquely by secret name.

    Iteration follows the order in which each secret name was first seen.
    """

    def __init__(self, references: Iterable[SecretReference] = ()) -> None:
        self._requirements: dict[str, SecretRequirement] = {}
        for reference in references:
            self.add(reference)

    def add(self, reference: SecretReference) -> SecretRequirement:
        """Merge a reference into the set.

        Args:
            reference: The reference to merge.

        Returns:
            The requirement the reference was merged into.

        """
        requirement = self._requirements.get(reference.secret_name)
        if requirement is None:
            requirement = SecretRequirement(secret_name=reference.secret_name, keys=reference.keys)
            self._requirements[reference.secret_name] = requirement
        requirement.absorb(reference)
        return requirement

    def get(self, secret_name: str) -> SecretRequirement | None:
        return self._requirements.get(secret_name)

    def names(self) -> list[str]:
        return list(self._requirements)

    def __iter__(self) -> Iterator[SecretRequirement]:
        return iter(self._requirements.values())

    def __len__(self) -> int:
        return len(self._requirements)

    def __contains__(self, secret_name: object) -> bool:
        return secret_name in self._requirements

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"RequirementSet({self.names()!r})"


@dataclass(slots=True)
class ScanResult:
    """Everything learned from one pass over a manifest stream."""

    requirements: RequirementSet
    documents: int = 0
    decode_errors: list[ManifestDecodeError] = field(default_factory=list)
    warnings: list[ExtractionWarning] = field(default_factory=list)


def scan(lines: Iterable[bytes]) -> ScanResult:
    """Scan a YAML stream and build its requirement set.

    Args:
        lines: The manifest stream, line by line, as bytes.

    Returns:
        ScanResult with the requirements plus any skipped documents and references.

    """
    result = ScanResult(requirements=RequirementSet())
    for document in iter_documents(lines, result.decode_errors):
        result.documents += 1
        for reference in extract_references(document, result.warnings):
            result.requirements.add(reference)
    ic(result.requirements)
    return result
