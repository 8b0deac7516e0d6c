"""
Database CRUD Operations Module

This module handles all database CRUD operations for:
- Translation jobs and job messages
- Job items
- Queue items (deferred translation work)
- App Config

For schema management and migrations, see core/schema.py
"""

import json
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

DB_FILE = Path(__file__).parent.parent / "tmgmt_connect.db"

JOB_STATES = ("draft", "submitted", "rejected", "finished")
JOB_ITEM_STATES = ("inactive", "active", "translated", "accepted", "aborted")


def get_connection():
    """Get a database connection."""
    return sqlite3.connect(DB_FILE)


def _job_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    job = dict(row)
    job["settings"] = json.loads(job["settings"]) if job.get("settings") else {}
    job["continuous"] = bool(job.get("continuous"))
    return job


def _job_item_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    item = dict(row)
    item["data"] = json.loads(item["data"]) if item.get("data") else {}
    return item


# ============================================================
# Job CRUD Operations
# ============================================================

def create_job(translator: str, source_language: str, target_language: str,
               continuous: bool = False, settings: Dict[str, Any] = None) -> int:
    """Create a new translation job in draft state."""
    now = datetime.now()
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO jobs (translator, source_language, target_language, state,
                              continuous, settings, created_at, changed_at)
            VALUES (?, ?, ?, 'draft', ?, ?, ?, ?)
        """, (translator, source_language, target_language, int(bool(continuous)),
              json.dumps(settings or {}, ensure_ascii=False), now, now))
        conn.commit()
        return cursor.lastrowid


def get_job(job_id: int) -> Optional[Dict[str, Any]]:
    """Get a job by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
        row = cursor.fetchone()
        return _job_from_row(row) if row else None


def find_jobs_by_batch_id(batch_id: str) -> List[Dict[str, Any]]:
    """Get all jobs whose settings carry the given batch id, newest first."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM jobs
            WHERE json_extract(settings, '$.batch_id') = ?
            ORDER BY id DESC
        """, (batch_id,))
        return [_job_from_row(row) for row in cursor.fetchall()]


def update_job_state(job_id: int, state: str):
    """Update the state of a job."""
    if state not in JOB_STATES:
        raise ValueError(f"Invalid job state: {state}")
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE jobs SET state = ?, changed_at = ? WHERE id = ?",
                       (state, datetime.now(), job_id))
        conn.commit()


def update_job_settings(job_id: int, settings: Dict[str, Any]):
    """Replace the settings map of a job."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE jobs SET settings = ?, changed_at = ? WHERE id = ?",
                       (json.dumps(settings, ensure_ascii=False), datetime.now(), job_id))
        conn.commit()


def delete_job(job_id: int):
    """Delete a job with its items and messages."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM job_messages WHERE job_id = ?", (job_id,))
        cursor.execute("DELETE FROM job_items WHERE job_id = ?", (job_id,))
        cursor.execute("DELETE FROM jobs WHERE id = ?", (job_id,))
        conn.commit()


def add_job_message(job_id: int, message: str, message_type: str = "status"):
    """Attach a message to a job (status, error, debug)."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO job_messages (job_id, message, type, created_at)
            VALUES (?, ?, ?, ?)
        """, (job_id, message, message_type, datetime.now()))
        conn.commit()


def get_job_messages(job_id: int) -> List[Dict[str, Any]]:
    """Get all messages of a job in creation order."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM job_messages WHERE job_id = ? ORDER BY id", (job_id,))
        return [dict(row) for row in cursor.fetchall()]


# ============================================================
# Job Item CRUD Operations
# ============================================================

def create_job_item(job_id: int, item_type: str, item_id: str,
                    data: Dict[str, Any], state: str = "inactive") -> int:
    """Create a job item holding nested field data."""
    if state not in JOB_ITEM_STATES:
        raise ValueError(f"Invalid job item state: {state}")
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO job_items (job_id, item_type, item_id, state, data, changed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (job_id, item_type, str(item_id), state,
              json.dumps(data, ensure_ascii=False), datetime.now()))
        conn.commit()
        return cursor.lastrowid


def get_job_item(job_item_id: int) -> Optional[Dict[str, Any]]:
    """Get a job item by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM job_items WHERE id = ?", (job_item_id,))
        row = cursor.fetchone()
        return _job_item_from_row(row) if row else None


def get_job_items(job_id: int, state: str = None) -> List[Dict[str, Any]]:
    """Get all items of a job, optionally filtered by state."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        if state is not None:
            cursor.execute("SELECT * FROM job_items WHERE job_id = ? AND state = ? ORDER BY id",
                           (job_id, state))
        else:
            cursor.execute("SELECT * FROM job_items WHERE job_id = ? ORDER BY id", (job_id,))
        return [_job_item_from_row(row) for row in cursor.fetchall()]


def update_job_item(job_item_id: int, data: Dict[str, Any] = None, state: str = None):
    """Update the data and/or state of a job item."""
    updates = []
    params = []

    if data is not None:
        updates.append("data = ?")
        params.append(json.dumps(data, ensure_ascii=False))
    if state is not None:
        if state not in JOB_ITEM_STATES:
            raise ValueError(f"Invalid job item state: {state}")
        updates.append("state = ?")
        params.append(state)

    if not updates:
        return

    updates.append("changed_at = ?")
    params.append(datetime.now())
    params.append(job_item_id)

    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"UPDATE job_items SET {', '.join(updates)} WHERE id = ?", params)
        conn.commit()


# ============================================================
# Queue Operations
# ============================================================

def create_queue_item(name: str, data: Dict[str, Any]) -> int:
    """Push a unit of work onto a named queue."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO queue_items (name, data, attempts, created_at, expire)
            VALUES (?, ?, 0, ?, 0)
        """, (name, json.dumps(data, ensure_ascii=False), time.time()))
        conn.commit()
        return cursor.lastrowid


def claim_queue_item(name: str, lease_seconds: float) -> Optional[Dict[str, Any]]:
    """
    Claim the oldest unclaimed (or expired) item of a queue.

    A claimed item is invisible to other claimers until it is deleted,
    released, or its lease runs out.
    """
    now = time.time()
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM queue_items
            WHERE name = ? AND expire <= ?
            ORDER BY created_at, id
            LIMIT 1
        """, (name, now))
        row = cursor.fetchone()
        if not row:
            return None
        cursor.execute("UPDATE queue_items SET expire = ? WHERE id = ? AND expire = ?",
                       (now + lease_seconds, row["id"], row["expire"]))
        conn.commit()
        if cursor.rowcount != 1:
            # Somebody else claimed it in between
            return None
        item = dict(row)
        item["data"] = json.loads(item["data"])
        return item


def release_queue_item(queue_item_id: int):
    """Hand a claimed item back to the queue, counting the failed attempt."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE queue_items SET expire = 0, attempts = attempts + 1 WHERE id = ?",
                       (queue_item_id,))
        conn.commit()


def delete_queue_item(queue_item_id: int):
    """Remove an item from its queue."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM queue_items WHERE id = ?", (queue_item_id,))
        conn.commit()


def number_of_queue_items(name: str) -> int:
    """Count the items of a queue, claimed or not."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM queue_items WHERE name = ?", (name,))
        return cursor.fetchone()[0]


# ============================================================
# App Config CRUD Operations
# ============================================================

def get_app_config(key: str) -> Optional[str]:
    """Get a configuration value by key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None


def set_app_config(key: str, value: str):
    """Set a configuration value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        # Ensure app_config table exists
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            INSERT OR REPLACE INTO app_config (key, value, updated_at)
            VALUES (?, ?, ?)
        """, (key, value, datetime.now()))
        conn.commit()
