"""
Job item data utilities for flatten/unflatten and chunking.

Job item data is a nested dict. Keys starting with '#' are properties of the
node they sit on ('#text', '#label', '#translate', '#escape', '#translation');
every other key is a child field. Flattened keys join the field path with
']['.

Example:
    {"title": {"0": {"value": {"#text": "Hello"}}}}
    <-> {"title][0][value": {"#text": "Hello"}}
"""

from math import ceil
from typing import Any, Callable, Dict, List, Sequence, Tuple

from tmgmt_connect.connectors.exceptions import MalformedResponseError

ARRAY_DELIMITER = ']['


def is_property(key: str) -> bool:
    return isinstance(key, str) and key.startswith('#')


def flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Dict[str, Any]]:
    """
    Flatten nested job item data into path -> properties.

    Only nodes that carry at least one property end up in the result;
    order follows the insertion order of the nested dicts.

    Args:
        data: Nested data
        prefix: Path of `data` itself (used when recursing)

    Returns:
        Ordered dict of flattened key -> properties of that node
    """
    flattened: Dict[str, Dict[str, Any]] = {}
    properties = {key: value for key, value in data.items() if is_property(key)}
    if properties and prefix:
        flattened[prefix] = dict(properties)

    for key, value in data.items():
        if is_property(key) or not isinstance(value, dict):
            continue
        path = f"{prefix}{ARRAY_DELIMITER}{key}" if prefix else str(key)
        flattened.update(flatten(value, path))

    return flattened


def filter_translatable(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Flatten and keep only items that need translation.

    An item needs translation when it has a non-empty '#text' and
    '#translate' is not explicitly False.
    """
    return {
        key: item
        for key, item in flatten(data).items()
        if item.get('#text') and item.get('#translate', True) is not False
    }


def unflatten(flat: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild nested data from flattened keys.

    Example:
        >>> unflatten({"title][0][value": {"#text": "Bonjour"}})
        {'title': {'0': {'value': {'#text': 'Bonjour'}}}}
    """
    result: Dict[str, Any] = {}

    for path, value in flat.items():
        keys = str(path).split(ARRAY_DELIMITER)
        node = result

        for key in keys[:-1]:
            if key not in node or not isinstance(node[key], dict):
                node[key] = {}
            node = node[key]

        leaf = keys[-1]
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf].update(value)
        else:
            node[leaf] = value

    return result


def split_keys_and_texts(
    items: Dict[str, Dict[str, Any]],
    escape: Callable[[Dict[str, Any]], str] = None,
) -> Tuple[List[str], List[str]]:
    """
    Build the parallel key sequence and text sequence sent to the remote API.

    Args:
        items: Output of filter_translatable
        escape: Optional callable turning a data item into the text to send

    Returns:
        (keys_sequence, texts) in the same order
    """
    keys_sequence = []
    texts = []
    for key, item in items.items():
        keys_sequence.append(key)
        texts.append(escape(item) if escape else item['#text'])
    return keys_sequence, texts


def merge_texts(keys: Sequence[str], texts: Sequence[str]) -> Dict[str, Dict[str, str]]:
    """
    Pair translated texts with their keys positionally.

    Raises:
        MalformedResponseError: fewer texts than keys.
    """
    if len(texts) < len(keys):
        raise MalformedResponseError(
            f"Expected {len(keys)} translations, got {len(texts)}",
            details={"expected": len(keys), "received": len(texts)},
        )
    return {key: {'#text': text} for key, text in zip(keys, texts)}


def chunk_texts(texts: Sequence[Any], size: int) -> List[List[Any]]:
    """
    Split a sequence into consecutive chunks of at most `size` entries.

    Produces ceil(len / size) chunks; only the last may be shorter.
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [list(texts[i * size:(i + 1) * size]) for i in range(ceil(len(texts) / size))]


def count_translatable(data: Dict[str, Any]) -> Tuple[int, int]:
    """
    Count translatable items and how many of them already carry a translation.

    Returns:
        (total, translated)
    """
    items = filter_translatable(data)
    translated = sum(
        1 for item in items.values()
        if isinstance(item.get('#translation'), dict) and isinstance(item['#translation'].get('#text'), str)
    )
    return len(items), translated
