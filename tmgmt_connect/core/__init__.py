"""
Core module - Job storage

This module provides:
- database: CRUD operations for jobs, job items, queue items and app config
- schema: Database initialization and migrations
"""

from tmgmt_connect.core.database import (
    DB_FILE,
    get_connection,
    # Job operations
    create_job,
    get_job,
    find_jobs_by_batch_id,
    update_job_state,
    update_job_settings,
    delete_job,
    add_job_message,
    get_job_messages,
    # Job item operations
    create_job_item,
    get_job_item,
    get_job_items,
    update_job_item,
    # Queue operations
    create_queue_item,
    claim_queue_item,
    release_queue_item,
    delete_queue_item,
    number_of_queue_items,
    # App config operations
    get_app_config,
    set_app_config,
)

from tmgmt_connect.core.schema import (
    DB_VERSION,
    get_db_version,
    set_db_version,
    initialize_database,
    ensure_all_schemas,
    migrate_database,
)
