"""SQLite schema, applied as ordered migrations.

The database's `PRAGMA user_version` holds the number of migrations applied.
Append new steps to ``MIGRATIONS``; never edit one that has shipped.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_TABLES = """
CREATE TABLE pantry_items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    stock_level TEXT NOT NULL DEFAULT 'stocked',
    last_price REAL,
    default_size TEXT,
    default_unit TEXT,
    last_store_name TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE TABLE shopping_lists (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    budget REAL NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'active',
    completed_at REAL,
    actual_total REAL,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE TABLE list_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    list_id TEXT NOT NULL REFERENCES shopping_lists(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    quantity REAL NOT NULL DEFAULT 1,
    priority TEXT NOT NULL DEFAULT 'medium',
    pantry_item_id TEXT,
    estimated_price REAL,
    actual_price REAL,
    is_checked INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE receipts (
    id TEXT PRIMARY KEY,
    total REAL NOT NULL DEFAULT 0,
    store_name TEXT NOT NULL DEFAULT '',
    purchase_date TEXT NOT NULL DEFAULT '',
    list_id TEXT REFERENCES shopping_lists(id),
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE TABLE receipt_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    receipt_id TEXT NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    quantity REAL NOT NULL DEFAULT 1,
    unit_price REAL NOT NULL DEFAULT 0,
    total_price REAL NOT NULL DEFAULT 0,
    category TEXT,
    size TEXT,
    unit TEXT,
    confidence REAL
);
"""

_INDEXES = """
CREATE INDEX idx_pantry_name ON pantry_items(name);
CREATE INDEX idx_receipts_list ON receipts(list_id);
CREATE UNIQUE INDEX idx_receipt_items_position ON receipt_items(receipt_id, position);
CREATE UNIQUE INDEX idx_list_items_position ON list_items(list_id, position);
"""

MIGRATIONS: list[str] = [_TABLES, _INDEXES]

SCHEMA_VERSION = len(MIGRATIONS)


def migrate(conn: sqlite3.Connection) -> int:
    """Apply the migrations the database has not seen yet.

    Returns:
        The schema version after migrating.

    Raises:
        sqlite3.DatabaseError: If the file was written by a newer schema.
    """
    version = conn.execute("PRAGMA user_version").fetchone()[0]
    if version > SCHEMA_VERSION:
        raise sqlite3.DatabaseError(
            f"database schema version {version} is newer than supported ({SCHEMA_VERSION})"
        )
    for step in range(version, SCHEMA_VERSION):
        # one transaction per step
        conn.executescript(
            f"BEGIN;\n{MIGRATIONS[step]}\nPRAGMA user_version = {step + 1};\nCOMMIT;"
        )
        logger.info("Migrated database schema to version %d", step + 1)
    return SCHEMA_VERSION
