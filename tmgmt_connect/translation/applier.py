"""
Job Applier

Commits flattened translations onto stored job items. Used by the immediate
run, the queue workers and the inbound callbacks alike.

A translated leaf keeps its source text and gains a '#translation' entry:
    {"#text": "Hello", "#translation": {"#text": "Bonjour"}}
"""

import copy
from typing import Any, Dict, List

from tmgmt_connect.connectors.exceptions import ApplyError
from tmgmt_connect.core import database as db
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.data import ARRAY_DELIMITER, count_translatable, is_property, unflatten

logger = get_logger(__name__)

DONE_ITEM_STATES = ("translated", "accepted")


def _normalize_flat(flat: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    if not isinstance(flat, dict):
        raise ApplyError("Translation payload must be a JSON object",
                         details={"type": type(flat).__name__})
    normalized = {}
    for key, value in flat.items():
        if isinstance(value, str):
            value = {'#text': value}
        if not isinstance(value, dict) or not isinstance(value.get('#text'), str):
            raise ApplyError(f"Translation for '{key}' has no text", details={"key": key})
        normalized[str(key)] = {'#text': value['#text']}
    return normalized


def _merge_translation(data: Dict[str, Any], translation: Dict[str, Any], path: List[str]):
    for key, value in translation.items():
        if is_property(key):
            continue
        if key not in data or not isinstance(data[key], dict):
            raise ApplyError(
                f"Unknown field path: {ARRAY_DELIMITER.join(path + [key])}",
                details={"path": ARRAY_DELIMITER.join(path + [key])},
            )
        node = data[key]
        if '#text' in value:
            node['#translation'] = {'#text': value['#text']}
        _merge_translation(node, value, path + [key])


def add_translated_data(data: Dict[str, Any], flat_translation: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge flattened translations into nested item data.

    Args:
        data: Stored item data (not modified)
        flat_translation: flattened key -> {"#text": translated}

    Returns:
        New nested data with '#translation' entries set

    Raises:
        ApplyError: a key does not exist in the item data
    """
    merged = copy.deepcopy(data)
    _merge_translation(merged, unflatten(_normalize_flat(flat_translation)), [])
    return merged


def _refresh_job_state(job_id: int):
    job = db.get_job(job_id)
    if not job or job["continuous"] or job["state"] == "finished":
        return
    items = db.get_job_items(job_id)
    if items and all(item["state"] in DONE_ITEM_STATES for item in items):
        db.update_job_state(job_id, "finished")
        db.add_job_message(job_id, "The translation job has been finished.")
        logger.info(f"Job {job_id} finished")


def _store(item: Dict[str, Any], data: Dict[str, Any], count: int) -> str:
    total, translated = count_translatable(data)
    state = "translated" if translated >= total else item["state"]
    db.update_job_item(item["id"], data=data, state=state)
    logger.info(f"Applied {count} translations to job item {item['id']} "
                f"({translated}/{total} translated)")
    return state


def apply_item_translation(item_id: int, flat_translation: Dict[str, Any]) -> str:
    """
    Apply flattened translations to one job item.

    The item is marked 'translated' once every translatable entry has a
    translation; a non-continuous job whose items are all translated is
    marked 'finished'.

    Returns:
        The resulting item state
    """
    item = db.get_job_item(item_id)
    if item is None:
        raise ApplyError(f"Job item {item_id} does not exist", details={"job_item_id": item_id})

    state = _store(item, add_translated_data(item["data"], flat_translation), len(flat_translation))
    _refresh_job_state(item["job_id"])
    return state


def apply_job_translation(job_id: int, flat_translation: Dict[str, Any]) -> List[int]:
    """
    Apply job-level flattened translations ('<item_id>][field][...' keys).

    Every group is validated before anything is written.

    Returns:
        Ids of the job items that were updated
    """
    if db.get_job(job_id) is None:
        raise ApplyError(f"Job {job_id} does not exist", details={"job_id": job_id})

    groups: Dict[str, Dict[str, Any]] = {}
    for key, value in _normalize_flat(flat_translation).items():
        item_key, sep, rest = key.partition(ARRAY_DELIMITER)
        if not sep or not rest:
            raise ApplyError(f"Translation key '{key}' has no job item prefix", details={"key": key})
        groups.setdefault(item_key, {})[rest] = value

    items = {str(item["id"]): item for item in db.get_job_items(job_id)}
    unknown = [item_key for item_key in groups if item_key not in items]
    if unknown:
        raise ApplyError(
            f"Job {job_id} has no job items {', '.join(unknown)}",
            details={"job_id": job_id, "job_item_ids": unknown},
        )

    prepared = []
    for item_key, group in groups.items():
        item = items[item_key]
        prepared.append((item, add_translated_data(item["data"], group), group))

    applied = []
    for item, data, group in prepared:
        _store(item, data, len(group))
        applied.append(item["id"])

    _refresh_job_state(job_id)
    return applied
