"""Metadata normalization and keyword indexing."""

from .normalizer import decode_metadata, normalize
from .text_indexer import generate_search_index, index_text_for, tokenize

__all__ = ['decode_metadata', 'normalize', 'generate_search_index', 'index_text_for', 'tokenize']
