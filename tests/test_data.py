import pytest

from tmgmt_connect.connectors.exceptions import MalformedResponseError
from tmgmt_connect.translation.data import (
    chunk_texts,
    count_translatable,
    filter_translatable,
    flatten,
    merge_texts,
    split_keys_and_texts,
    unflatten,
)


NESTED = {
    "title": {"0": {"value": {"#text": "Hello", "#label": "Title"}}},
    "body": {
        "0": {
            "value": {"#text": "World", "#label": "Body"},
            "format": {"#text": "basic_html", "#translate": False},
        }
    },
    "empty": {"0": {"value": {"#text": ""}}},
}


def test_flatten_joins_paths_in_order():
    flat = flatten(NESTED)
    assert list(flat) == [
        "title][0][value",
        "body][0][value",
        "body][0][format",
        "empty][0][value",
    ]
    assert flat["title][0][value"] == {"#text": "Hello", "#label": "Title"}


def test_unflatten_restores_nested_data():
    assert unflatten(flatten(NESTED)) == NESTED


def test_unflatten_example():
    assert unflatten({"title][0][value": {"#text": "Bonjour"}}) == {
        "title": {"0": {"value": {"#text": "Bonjour"}}}
    }


def test_filter_translatable_skips_empty_and_untranslatable():
    assert list(filter_translatable(NESTED)) == ["title][0][value", "body][0][value"]


def test_split_keys_and_texts_keeps_order():
    keys, texts = split_keys_and_texts(filter_translatable(NESTED))
    assert keys == ["title][0][value", "body][0][value"]
    assert texts == ["Hello", "World"]


def test_split_keys_and_texts_uses_escape_callable():
    _, texts = split_keys_and_texts(filter_translatable(NESTED), escape=lambda item: item["#text"].upper())
    assert texts == ["HELLO", "WORLD"]


@pytest.mark.parametrize("count,size,expected_lengths", [
    (0, 5, []),
    (5, 5, [5]),
    (12, 5, [5, 5, 2]),
    (3, 1, [1, 1, 1]),
])
def test_chunk_texts_counts(count, size, expected_lengths):
    texts = [f"t{i}" for i in range(count)]
    chunks = chunk_texts(texts, size)
    assert [len(chunk) for chunk in chunks] == expected_lengths
    assert [text for chunk in chunks for text in chunk] == texts


def test_chunk_texts_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunk_texts(["a"], 0)


def test_merge_texts_pairs_by_position():
    assert merge_texts(["a", "b"], ["A", "B"]) == {"a": {"#text": "A"}, "b": {"#text": "B"}}


def test_merge_texts_raises_when_short():
    with pytest.raises(MalformedResponseError):
        merge_texts(["a", "b"], ["A"])


def test_count_translatable():
    data = {
        "title": {"0": {"value": {"#text": "Hello", "#translation": {"#text": "Bonjour"}}}},
        "body": {"0": {"value": {"#text": "World"}}},
    }
    assert count_translatable(data) == (2, 1)


def test_count_translatable_counts_empty_translation():
    data = {"title": {"0": {"value": {"#text": "-", "#translation": {"#text": ""}}}}}
    assert count_translatable(data) == (1, 1)
