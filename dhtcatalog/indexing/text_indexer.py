"""
Keyword index for catalog entries.

The index is a space-separated list of the distinct tokens found in a
torrent's name and file paths, most frequent first. Tokens with the same
frequency are ordered by code point so the same input always produces the
same index.
"""

from collections import Counter
from typing import Iterable, List

from ..catalog.models import FileEntry

DELIMITERS = "/[]()._"
_TRANSLATION = str.maketrans({ch: " " for ch in DELIMITERS})


def tokenize(text: str) -> List[str]:
    """Split ``text`` on spaces after replacing delimiter characters."""
    return [token for token in text.translate(_TRANSLATION).split(" ") if token]


def rank_tokens(tokens: Iterable[str]) -> List[str]:
    counts = Counter(tokens)
    return sorted(counts, key=lambda token: (-counts[token], token))


def generate_search_index(text: str) -> str:
    """Return the frequency-ranked keyword string for ``text``.

    >>> generate_search_index("Movie.Name.2020/Subfolder/File.mkv")
    '2020 File Movie Name Subfolder mkv'
    """
    return " ".join(rank_tokens(tokenize(text))).strip()


def index_text_for(name: str, files: Iterable[FileEntry] = ()) -> str:
    parts = [name]
    for entry in files:
        parts.extend(entry.path)
    return " ".join(parts)
