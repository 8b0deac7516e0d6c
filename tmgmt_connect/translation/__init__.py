"""
Translation module - Submission workflow

This module provides:
- data: flatten / unflatten / chunk helpers for job item data
- Escaper: sentinel tags around non-translatable spans
- BatchSubmitter: deferred or immediate submission of jobs
- Job applier: commits translations onto job items
"""

from tmgmt_connect.translation.progress import TranslationProgress
from tmgmt_connect.translation.data import (
    flatten,
    unflatten,
    filter_translatable,
    split_keys_and_texts,
    merge_texts,
    chunk_texts,
    count_translatable,
)
from tmgmt_connect.translation.escaper import Escaper, designate_spans
from tmgmt_connect.translation.processor import (
    BatchContext,
    translate_chunk,
    translate_chunks_sequential,
)
from tmgmt_connect.translation.applier import (
    add_translated_data,
    apply_item_translation,
    apply_job_translation,
)
from tmgmt_connect.translation.submitter import (
    BatchPlan,
    BatchSubmitter,
    DispatchMode,
    SubmissionResult,
    SubmissionState,
)
