"""
Translation Processing Module

Contains functions for processing translation chunks:
- The BatchContext accumulator threaded through chunk steps
- One remote call per chunk, results decoded and merged by position
- Sequential chunk translation with progress (deferred queue worker)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from tmgmt_connect.connectors.client import NO_CONTENT
from tmgmt_connect.connectors.exceptions import MalformedResponseError, SubmissionCancelled
from tmgmt_connect.logger import get_logger
from tmgmt_connect.translation.data import merge_texts
from tmgmt_connect.translation.progress import TranslationProgress

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchContext:
    """
    Accumulator of one item's submission.

    index: number of keys consumed so far (translated or delivered later)
    translation: flattened key -> {"#text": translated}
    """
    index: int = 0
    translation: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def advance(self, count: int, translation: Optional[Dict[str, Dict[str, str]]] = None) -> "BatchContext":
        """Return a new context moved `count` keys forward with `translation` merged in."""
        merged = dict(self.translation)
        if translation:
            merged.update(translation)
        return BatchContext(index=self.index + count, translation=merged)


def _decode_translations(plugin, translations: List[Any]) -> List[str]:
    texts = []
    for entry in translations:
        if not isinstance(entry, dict) or not isinstance(entry.get("text"), str):
            raise MalformedResponseError(
                f"{plugin.label} API returned a translation entry without text",
                details={"entry": entry},
            )
        texts.append(plugin.escaper.decode_result(entry["text"]))
    return texts


def translate_chunk(
    plugin,
    job: Dict[str, Any],
    chunk: Sequence[str],
    keys_sequence: Sequence[str],
    context: BatchContext,
) -> BatchContext:
    """
    Send one chunk and fold its result into the context.

    The keys of the chunk are keys_sequence[context.index:context.index + len(chunk)].
    A 204 reply means the chunk is delivered through the inbound callback:
    the index advances and nothing is merged. Any other reply must carry
    one translation per text.

    Args:
        plugin: TranslatorPlugin doing the request
        job: Job the chunk belongs to
        chunk: Escaped texts to send
        keys_sequence: Flattened keys of the whole item
        context: Accumulator so far

    Returns:
        New BatchContext

    Raises:
        TranslationError subclasses from the remote call;
        MalformedResponseError when the answer has no translations list or
        does not line up with the chunk.
    """
    query_params = {
        "source_lang": plugin.remote_source_language(job),
        "target_lang": plugin.remote_target_language(job),
        "text": list(chunk),
    }

    result = plugin.do_request(job, query_params)

    if result.get(NO_CONTENT):
        logger.debug(f"Job {job['id']}: no inline translations for {len(chunk)} keys, expecting callback")
        return context.advance(len(chunk))

    translations = result.get("translations")
    if not isinstance(translations, list):
        raise MalformedResponseError(
            f"{plugin.label} API response has no translations",
            details={"keys": sorted(result)},
        )

    if len(translations) != len(chunk):
        raise MalformedResponseError(
            f"{plugin.label} API returned {len(translations)} translations for {len(chunk)} texts",
            details={"expected": len(chunk), "received": len(translations)},
        )

    keys = keys_sequence[context.index:context.index + len(chunk)]
    texts = _decode_translations(plugin, translations)
    return context.advance(len(chunk), merge_texts(keys, texts))


def translate_chunks_sequential(
    plugin,
    job: Dict[str, Any],
    job_item_id: int,
    chunks: List[List[str]],
    keys_sequence: Sequence[str],
    cancel_check: Optional[Callable[[], bool]] = None,
    progress_callback: Optional[Callable[[TranslationProgress], None]] = None,
    context: Optional[BatchContext] = None,
) -> BatchContext:
    """
    Translate multiple chunks of one item sequentially.

    Stops at the first failing chunk and re-raises its error; nothing is
    applied here. Cancellation is only honoured between chunks.

    Returns:
        The BatchContext after the last chunk
    """
    context = context or BatchContext()
    total_batches = len(chunks)

    for chunk_idx, chunk in enumerate(chunks):
        if cancel_check and cancel_check():
            raise SubmissionCancelled(details={"job_item_id": job_item_id, "index": context.index})

        logger.debug(f"Chunk {chunk_idx + 1}/{total_batches}: sending {len(chunk)} strings")
        context = translate_chunk(plugin, job, chunk, keys_sequence, context)
        logger.debug(f"Chunk {chunk_idx + 1}/{total_batches}: done, index {context.index}")

        if progress_callback:
            progress_callback(TranslationProgress(
                job_id=job["id"],
                job_item_id=job_item_id,
                current_batch=chunk_idx + 1,
                total_batches=total_batches,
                batch_keys_count=len(chunk),
                processed_keys=context.index,
                total_keys=len(keys_sequence),
                phase="batch_done",
            ))

    return context
