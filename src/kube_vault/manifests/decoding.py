"""Multi-document YAML decoding.

This module splits a YAML byte stream on document markers and decodes each
document on its own, so that one malformed resource (bad YAML or bad UTF-8)
does not hide the secrets used by every other resource in the stream.
"""

from collections.abc import Iterable, Iterator
from typing import Any

import yaml
from icecream import ic
from rich.markup import escape

from kube_vault import console
from kube_vault.exceptions import ManifestDecodeError
from kube_vault.models import ManifestDocument

_DOCUMENT_START = b"---"
_DOCUMENT_END = b"..."


def _is_document_start(line: bytes) -> bool:
    return line.startswith(_DOCUMENT_START) and (len(line) == 3 or line[3:4] in (b" ", b"\t", b"\r", b"\n"))


def _is_document_end(line: bytes) -> bool:
    return line.rstrip() == _DOCUMENT_END


def _has_content(lines: list[bytes]) -> bool:
    """Check whether a chunk holds anything besides blank lines and comments."""
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith(b"#"):
            return True
    return False


def split_documents(lines: Iterable[bytes]) -> Iterator[bytes]:
    """Yield the raw bytes of each non-empty document in a YAML stream.

    Args:
        lines: The stream, line by line (a binary file object works).

    Yields:
        The source bytes of one document at a time.

    """
    chunk: list[bytes] = []
    for line in lines:
        if _is_document_start(line):
            if _has_content(chunk):
                yield b"".join(chunk)
            chunk = []
            remainder = line[3:].strip()
            if remainder:
                chunk.append(remainder + b"\n")
        elif _is_document_end(line):
            if _has_content(chunk):
                yield b"".join(chunk)
            chunk = []
        elif line.startswith(b"%") and not _has_content(chunk):
            # directives only apply to the document that follows
            continue
        else:
            chunk.append(line if line.endswith(b"\n") else line + b"\n")
    if _has_content(chunk):
        yield b"".join(chunk)


def _decode(index: int, raw: bytes) -> Any:
    """Decode one document's bytes.

    Raises:
        ManifestDecodeError: If the bytes aren't UTF-8 or aren't valid YAML.

    """
    try:
        return yaml.safe_load(raw.decode("utf-8"))
    except UnicodeDecodeError as err:
        raise ManifestDecodeError(index, f"invalid UTF-8: {err}") from err
    except yaml.YAMLError as err:
        raise ManifestDecodeError(index, str(err).replace("\n", " ")) from err


def iter_documents(
    lines: Iterable[bytes],
    errors: list[ManifestDecodeError] | None = None,
) -> Iterator[ManifestDocument]:
    """Decode every document of a YAML stream lazily.

    Args:
        lines: The stream, line by line, as bytes.
        errors: Optional list collecting documents that failed to decode.

    Yields:
        One ManifestDocument per decodable, non-null document.

    """
    for index, raw in enumerate(split_documents(lines), start=1):
        try:
            body = _decode(index, raw)
        except ManifestDecodeError as decode_error:
            console.warning(f"Skipping {escape(str(decode_error))}")
            if errors is not None:
                errors.append(decode_error)
            continue
        if body is None:
            continue
        ic(index, type(body).__name__)
        yield ManifestDocument(index=index, body=body)
