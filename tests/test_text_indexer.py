"""Tests for the keyword index generator."""

from dhtcatalog.catalog.models import FileEntry
from dhtcatalog.indexing.text_indexer import (
    generate_search_index,
    index_text_for,
    rank_tokens,
    tokenize,
)


def test_tokenize_replaces_every_delimiter():
    assert tokenize("a/b[c]d(e)f.g_h") == ["a", "b", "c", "d", "e", "f", "g", "h"]


def test_tokenize_discards_empty_tokens():
    assert tokenize("  [Group]  Title..mkv ") == ["Group", "Title", "mkv"]


def test_example_path_yields_each_token_once():
    text = "Movie.Name.2020/Subfolder/File.mkv"
    assert sorted(tokenize(text)) == sorted(["Movie", "Name", "2020", "Subfolder", "File", "mkv"])
    assert generate_search_index(text) == "2020 File Movie Name Subfolder mkv"


def test_most_frequent_tokens_come_first():
    assert generate_search_index("b a b c c c") == "c b a"


def test_ties_are_ordered_by_code_point():
    assert rank_tokens(["beta", "Alpha", "alpha", "beta", "Alpha", "alpha"]) == ["Alpha", "alpha", "beta"]


def test_counting_is_case_sensitive():
    assert generate_search_index("Show show SHOW show") == "show SHOW Show"


def test_index_is_repeatable():
    text = "Some.Show.S01E02/[Subs]/Some_Show_S01E02.srt"
    assert generate_search_index(text) == generate_search_index(text)


def test_empty_text_yields_empty_index():
    assert generate_search_index("") == ""
    assert generate_search_index(" ./_ ") == ""


def test_index_text_includes_name_and_all_segments():
    files = [FileEntry(path=("a", "b.txt"), length=10), FileEntry(path=("c.txt",), length=20)]
    assert index_text_for("Pack", files) == "Pack a b.txt c.txt"
    assert generate_search_index(index_text_for("Pack", files)) == "txt Pack a b c"
