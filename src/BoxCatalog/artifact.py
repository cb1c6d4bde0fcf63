"""Box archive inspection and test-box generation.

A box is a tar archive (usually gzip compressed) whose root contains a
``metadata.json`` file naming the provider the box was built for::

    {"provider": "virtualbox"}

Inspection yields the provider name plus a digest computed over the whole
archive file.  The helpers here are independent of any storage backend and
operate on local paths or in-memory bytes.
"""

from __future__ import annotations

import hashlib
import io
import json
import logging
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional, Union

from .errors import ArtifactFormatError, ArtifactIOError, ConfigError

__all__ = [
    "METADATA_FILENAME",
    "SUPPORTED_ALGORITHMS",
    "DEFAULT_CHECKSUM_ALGORITHM",
    "ArtifactInfo",
    "normalize_algorithm",
    "file_digest",
    "read_box_provider",
    "inspect_box_file",
    "inspect_box_bytes",
    "create_test_box_file",
]

METADATA_FILENAME = "metadata.json"
SUPPORTED_ALGORITHMS = frozenset({"md5", "sha1", "sha256", "sha512"})
DEFAULT_CHECKSUM_ALGORITHM = "sha1"
_CHUNK_SIZE = 1 << 20

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True, slots=True)
class ArtifactInfo:
    """Identity derived from a box archive."""

    provider: str
    checksum_type: str
    checksum: str


def normalize_algorithm(algorithm: Optional[str]) -> str:
    """Return the lower-cased digest name, defaulting to ``sha1``."""

    candidate = (algorithm or DEFAULT_CHECKSUM_ALGORITHM).strip().lower()
    if candidate not in SUPPORTED_ALGORITHMS:
        raise ConfigError(
            f"Unsupported checksum algorithm '{candidate}'; "
            f"expected one of {sorted(SUPPORTED_ALGORITHMS)}"
        )
    return candidate


def _digest_stream(stream: IO[bytes], algorithm: str) -> str:
    hasher = hashlib.new(algorithm)
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def file_digest(path: PathLike, algorithm: Optional[str] = None) -> str:
    """Stream ``path`` through ``algorithm`` and return the hex digest."""

    name = normalize_algorithm(algorithm)
    try:
        with Path(path).open("rb") as stream:
            return _digest_stream(stream, name)
    except OSError as exc:
        raise ArtifactIOError(f"Unable to read box file {path}: {exc}") from exc


def _metadata_member(archive: tarfile.TarFile, source: str) -> tarfile.TarInfo:
    for member in archive.getmembers():
        name = member.name
        if name.startswith("./"):
            name = name[2:]
        if name == METADATA_FILENAME and member.isfile():
            return member
    raise ArtifactFormatError(f"{source} is not a box: no {METADATA_FILENAME} at archive root")


def read_box_provider(stream: IO[bytes], *, source: str = "<stream>") -> str:
    """Return the provider named by the archive's ``metadata.json``.

    Raises:
        ArtifactFormatError: If the stream is not a tar archive, the metadata
            file is absent, or it does not hold a JSON object with a string
            ``provider`` field.
    """

    try:
        with tarfile.open(fileobj=stream, mode="r:*") as archive:
            member = _metadata_member(archive, source)
            handle = archive.extractfile(member)
            if handle is None:
                raise ArtifactFormatError(f"{source}: {METADATA_FILENAME} cannot be read")
            raw = handle.read()
    except tarfile.TarError as exc:
        raise ArtifactFormatError(f"{source} is not a readable tar archive: {exc}") from exc
    except EOFError as exc:
        raise ArtifactFormatError(f"{source} is truncated: {exc}") from exc

    try:
        metadata = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ArtifactFormatError(f"{source}: {METADATA_FILENAME} is not valid JSON: {exc}") from exc
    if not isinstance(metadata, dict):
        raise ArtifactFormatError(f"{source}: {METADATA_FILENAME} must be a JSON object")
    provider = metadata.get("provider")
    if not isinstance(provider, str) or not provider:
        raise ArtifactFormatError(f"{source}: {METADATA_FILENAME} has no 'provider' field")
    return provider


def inspect_box_file(path: PathLike, algorithm: Optional[str] = None) -> ArtifactInfo:
    """Derive provider and checksum from the box archive at ``path``."""

    name = normalize_algorithm(algorithm)
    source = str(path)
    try:
        with Path(path).open("rb") as stream:
            provider = read_box_provider(stream, source=source)
    except OSError as exc:
        raise ArtifactIOError(f"Unable to read box file {source}: {exc}") from exc
    checksum = file_digest(path, name)
    logger.debug(
        "inspected box file",
        extra={"stage": "inspect", "box_path": source, "provider": provider, "algorithm": name},
    )
    return ArtifactInfo(provider=provider, checksum_type=name, checksum=checksum)


def inspect_box_bytes(data: bytes, algorithm: Optional[str] = None) -> ArtifactInfo:
    """In-memory variant of :func:`inspect_box_file`."""

    name = normalize_algorithm(algorithm)
    provider = read_box_provider(io.BytesIO(data), source="<bytes>")
    checksum = _digest_stream(io.BytesIO(data), name)
    return ArtifactInfo(provider=provider, checksum_type=name, checksum=checksum)


def _add_bytes(archive: tarfile.TarFile, name: str, payload: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(payload)
    info.mode = 0o644
    archive.addfile(info, io.BytesIO(payload))


def create_test_box_file(path: PathLike, provider: str, compress: bool = True) -> Path:
    """Write a minimal but well-formed box archive for ``provider`` to ``path``.

    Only meant for fixtures and smoke tests; the disk image member is a
    placeholder.
    """

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = "w:gz" if compress else "w"
        with tarfile.open(target, mode) as archive:
            metadata = json.dumps({"provider": provider}).encode("utf-8")
            _add_bytes(archive, METADATA_FILENAME, metadata)
            _add_bytes(archive, "box-disk1.img", f"placeholder disk for {provider}\n".encode())
    except OSError as exc:
        raise ArtifactIOError(f"Unable to write test box {target}: {exc}") from exc
    logger.info(
        "created test box",
        extra={"stage": "create", "box_path": str(target), "provider": provider},
    )
    return target
