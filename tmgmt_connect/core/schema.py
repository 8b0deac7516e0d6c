"""
Database Schema Management Module

This module handles database initialization, schema validation, and migrations.
For CRUD operations, see core/database.py
"""

import sqlite3

# Import database module to use DB_FILE and get_connection dynamically
# This ensures monkeypatching in tests works correctly
import tmgmt_connect.core.database as db

DB_VERSION = 1  # Increment when schema changes


def get_connection():
    """Get a database connection using the database module's DB_FILE."""
    return db.get_connection()


def get_db_version() -> int:
    """Get current database version."""
    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT version FROM db_version LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else 0
    except sqlite3.OperationalError:
        return 0


def set_db_version(version: int):
    """Set database version."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER)")
        cursor.execute("DELETE FROM db_version")
        cursor.execute("INSERT INTO db_version (version) VALUES (?)", (version,))
        conn.commit()


def initialize_database():
    """Initializes the database and creates the tables."""
    from tmgmt_connect.logger import get_logger
    logger = get_logger(__name__)

    if db.DB_FILE.exists():
        current_version = get_db_version()
        if current_version < DB_VERSION:
            migrate_database(current_version, DB_VERSION)
        return

    logger.info(f"Creating database at {db.DB_FILE}")
    with get_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
        CREATE TABLE jobs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            translator TEXT NOT NULL,
            source_language TEXT NOT NULL,
            target_language TEXT NOT NULL,
            state TEXT NOT NULL DEFAULT 'draft',
            continuous INTEGER DEFAULT 0,
            settings TEXT NOT NULL DEFAULT '{}',
            created_at TIMESTAMP,
            changed_at TIMESTAMP
        )
        """)

        cursor.execute("""
        CREATE TABLE job_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_id INTEGER NOT NULL,
            item_type TEXT NOT NULL,
            item_id TEXT NOT NULL,
            state TEXT NOT NULL DEFAULT 'inactive',
            data TEXT NOT NULL DEFAULT '{}',
            changed_at TIMESTAMP,
            FOREIGN KEY (job_id) REFERENCES jobs (id)
        )
        """)

        cursor.execute("""
        CREATE TABLE job_messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_id INTEGER NOT NULL,
            message TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'status',
            created_at TIMESTAMP,
            FOREIGN KEY (job_id) REFERENCES jobs (id)
        )
        """)

        cursor.execute("""
        CREATE TABLE queue_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            data TEXT NOT NULL,
            attempts INTEGER NOT NULL DEFAULT 0,
            created_at REAL NOT NULL,
            expire REAL NOT NULL DEFAULT 0
        )
        """)

        cursor.execute("""
        CREATE TABLE app_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """)

        conn.commit()

    ensure_database_indexes()
    set_db_version(DB_VERSION)


# ============================================================
# Database Schema Validation
# ============================================================

def ensure_database_indexes():
    """
    Ensure all performance-critical indexes exist.
    This function should be called during database initialization/migration.
    """
    from tmgmt_connect.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_job_items_job_id
                ON job_items(job_id, state)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_job_messages_job_id
                ON job_messages(job_id)
            """)

            # Claim order lookups
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_queue_items_name_expire
                ON queue_items(name, expire, created_at)
            """)

            conn.commit()
            logger.debug("Database indexes created/verified successfully")

    except Exception as e:
        logger.error(f"Failed to ensure database indexes: {e}")
        raise


def ensure_all_schemas():
    """Ensure all tables have their indexes."""
    ensure_database_indexes()


# ============================================================
# Database Migration
# ============================================================

def migrate_database(from_version: int, to_version: int):
    """Migrate database from one version to another."""
    from tmgmt_connect.logger import get_logger
    logger = get_logger(__name__)

    logger.info(f"Migrating database from version {from_version} to {to_version}")

    ensure_all_schemas()

    set_db_version(to_version)
    logger.info(f"Database migration completed: now at version {to_version}")
