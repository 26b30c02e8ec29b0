import sqlite3
import threading

from . import config

# Thread-local storage for database connections
_local = threading.local()


def connect(path=None) -> sqlite3.Connection:
    """Open a configured connection (rows as sqlite3.Row, foreign keys on)."""
    conn = sqlite3.connect(path or config.DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db() -> sqlite3.Connection:
    """Get thread-local database connection (reopened if DATABASE_PATH changed)"""
    path = str(config.DATABASE_PATH)
    if getattr(_local, "connection", None) is None or getattr(_local, "path", None) != path:
        close_db()
        _local.connection = connect(path)
        _local.path = path
    return _local.connection


def close_db():
    """Close this thread's connection, if any."""
    conn = getattr(_local, 'connection', None)
    if conn is not None:
        conn.close()
    _local.connection = None


def init_db(db: sqlite3.Connection = None):
    """Initialize database schema"""
    db = db or get_db()

    # Users are provisioned by the auth layer; only id and role matter here
    db.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            display_name TEXT,
            role TEXT NOT NULL DEFAULT 'member' CHECK(role IN ('admin', 'member')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Events ("runs"): dated occasions photos are organized around
    db.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            event_date TEXT NOT NULL,
            title TEXT,
            created_by TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (created_by) REFERENCES users(id)
        )
    """)

    # Folders form the vault tree; (parent_id, slug) is unique among siblings
    db.execute("""
        CREATE TABLE IF NOT EXISTS folders (
            id TEXT PRIMARY KEY,
            parent_id TEXT,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            kind TEXT NOT NULL DEFAULT 'custom' CHECK(kind IN ('root', 'event', 'custom')),
            event_id TEXT,
            created_by TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL,
            FOREIGN KEY (parent_id) REFERENCES folders(id) ON DELETE CASCADE,
            FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE SET NULL,
            FOREIGN KEY (created_by) REFERENCES users(id),
            UNIQUE(parent_id, slug)
        )
    """)

    # Exactly one root node for the whole vault
    db.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_folders_single_root ON folders(kind) WHERE kind = 'root'"
    )
    db.execute("CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_folders_event ON folders(event_id)")

    db.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id TEXT PRIMARY KEY,
            event_id TEXT,
            folder_id TEXT,
            storage_path TEXT NOT NULL UNIQUE,
            file_name TEXT,
            file_size INTEGER,
            mime_type TEXT,
            display_order INTEGER NOT NULL DEFAULT 0,
            uploaded_by TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE SET NULL,
            FOREIGN KEY (folder_id) REFERENCES folders(id) ON DELETE SET NULL,
            FOREIGN KEY (uploaded_by) REFERENCES users(id)
        )
    """)
    db.execute("CREATE INDEX IF NOT EXISTS idx_photos_event ON photos(event_id, display_order)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_photos_folder ON photos(folder_id)")

    db.commit()
