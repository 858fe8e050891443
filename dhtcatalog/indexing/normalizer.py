"""
Metadata normalization.

Raw announcements carry a bencoded info dictionary whose values are
``bytes``, ``int``, ``list`` or nested dictionaries. Every field read here is
checked for shape before use; anything unexpected raises ValidationError for
that single announcement.
"""

from typing import Any, Mapping, Optional, Tuple

import bencodepy

from ..catalog.models import INFO_HASH_LENGTH, FileEntry, TorrentRecord
from ..core.errors import ValidationError


_MISSING = object()

# torrents.total_length and torrent_files.length are BIGINT
MAX_LENGTH = 2 ** 63 - 1


def decode_metadata(raw: bytes) -> Mapping:
    """Bencode-decode an announcement payload into its info dictionary."""
    if not isinstance(raw, (bytes, bytearray)):
        raise ValidationError(f"metadata payload must be bytes, got {type(raw).__name__}")
    try:
        decoded = bencodepy.decode(bytes(raw))
    except (bencodepy.BencodeDecodeError, ValueError, TypeError, IndexError) as e:
        raise ValidationError(f"undecodable metadata: {e}") from e
    if not isinstance(decoded, Mapping):
        raise ValidationError(f"metadata must be a dictionary, got {type(decoded).__name__}")
    return decoded


def _field(mapping: Mapping, key: str) -> Any:
    """Look a key up as bencode bytes first, then as a plain string."""
    value = mapping.get(key.encode("ascii"), _MISSING)
    if value is _MISSING:
        value = mapping.get(key, _MISSING)
    return value


def _as_text(value: Any, what: str) -> str:
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode("utf-8", errors="replace")
    elif isinstance(value, str):
        text = value
    else:
        raise ValidationError(f"{what} must be a string, got {type(value).__name__}")
    # PostgreSQL text cannot hold NUL
    if "\x00" in text:
        raise ValidationError(f"{what} contains a NUL character")
    return text


def _as_length(value: Any, what: str) -> int:
    # bool is an int subclass but never a valid length
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValidationError(f"{what} must not be negative, got {value}")
    if value > MAX_LENGTH:
        raise ValidationError(f"{what} is too large, got {value}")
    return value


def _parse_files(value: Any) -> Tuple[FileEntry, ...]:
    if not isinstance(value, list):
        raise ValidationError(f"files must be a list, got {type(value).__name__}")

    entries = []
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise ValidationError(f"files[{index}] must be a dictionary")

        path = _field(item, "path")
        if path is _MISSING:
            raise ValidationError(f"files[{index}] has no path")
        if not isinstance(path, list):
            raise ValidationError(f"files[{index}].path must be a list")
        segments = tuple(_as_text(segment, f"files[{index}].path segment") for segment in path)

        length = _field(item, "length")
        if length is _MISSING:
            raise ValidationError(f"files[{index}] has no length")

        entries.append(FileEntry(path=segments, length=_as_length(length, f"files[{index}].length")))
    return tuple(entries)


def normalize(info_hash: bytes, metadata: Mapping) -> Optional[TorrentRecord]:
    """
    Convert a decoded info dictionary into a TorrentRecord.

    Returns:
        the record, or None when the metadata carries no ``name``

    Raises:
        ValidationError: a field is present but has the wrong shape
    """
    if not isinstance(info_hash, (bytes, bytearray)) or len(info_hash) != INFO_HASH_LENGTH:
        raise ValidationError(f"info hash must be {INFO_HASH_LENGTH} bytes")
    if not isinstance(metadata, Mapping):
        raise ValidationError(f"metadata must be a dictionary, got {type(metadata).__name__}")

    name = _field(metadata, "name")
    if name is _MISSING:
        return None

    record_name = _as_text(name, "name")

    files_value = _field(metadata, "files")
    if files_value is not _MISSING:
        files = _parse_files(files_value)
        total_length = _as_length(sum(entry.length for entry in files), "total length")
    else:
        files = ()
        length = _field(metadata, "length")
        total_length = 0 if length is _MISSING else _as_length(length, "length")

    return TorrentRecord(
        info_hash=bytes(info_hash).hex(),
        name=record_name,
        total_length=total_length,
        files=files,
    )
