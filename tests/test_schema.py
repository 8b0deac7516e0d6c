from tmgmt_connect.core import database as db
from tmgmt_connect.core import schema


def test_new_database_starts_at_first_version():
    assert schema.DB_VERSION == 1
    assert schema.get_db_version() == 1


def test_queue_table_tracks_attempts_from_the_start():
    with db.get_connection() as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(queue_items)")}
    assert {"name", "data", "attempts", "expire"} <= columns


def test_initialize_is_idempotent():
    schema.initialize_database()
    assert schema.get_db_version() == 1
