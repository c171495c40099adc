"""Schema setup and demo accounts, used by the startup flags and scripts/."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Mapping

from werkzeug.security import generate_password_hash

from .connection import DBConfig, DatabaseConnection
from .mysql_base import db_cursor

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = (
    ("Demo Teacher", "teacher@classroom.local", "teacher123", "teacher"),
    ("Demo Student", "student@classroom.local", "student123", "student"),
    ("Admin", "admin@classroom.local", "admin123", "admin"),
)

# quoted strings are kept whole so a ';' inside a DEFAULT '...' never splits a statement
_SQL_TOKEN = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|--[^\n]*|;|[^'\";-]+|.", re.S)
_DB_SELECTION = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.I)


def split_statements(sql: str) -> Iterator[str]:
    """Yield the statements of a script, minus comments and CREATE DATABASE / USE lines."""
    current: list[str] = []
    for token in _SQL_TOKEN.findall(sql):
        if token.startswith("--"):
            continue
        if token != ";":
            current.append(token)
            continue
        statement = "".join(current).strip()
        current = []
        if statement and not _DB_SELECTION.match(statement):
            yield statement

    tail = "".join(current).strip()
    if tail and not _DB_SELECTION.match(tail):
        yield tail


def _connection(db_config: Mapping) -> DatabaseConnection:
    return DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))


def ensure_database_exists(db_config: Mapping) -> None:
    name = DBConfig.from_mapping(db_config).database
    conn = _connection(db_config).server_connect()
    try:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    statements = list(split_statements(Path(schema_path).read_text(encoding="utf-8")))

    with db_cursor(_connection(db_config), dictionary=False) as (_, cur):
        for statement in statements:
            cur.execute(statement)
    logger.info("Applied %s statements from %s", len(statements), schema_path)


def ensure_demo_users(db_config: Mapping) -> None:
    """Create the demo accounts, or reset their name, role and password when they exist."""
    with db_cursor(_connection(db_config)) as (_, cur):
        for name, email, password, role in DEMO_ACCOUNTS:
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            found = cur.fetchone()
            password_hash = generate_password_hash(password)
            if found:
                cur.execute(
                    "UPDATE users SET name=%s, password_hash=%s, role=%s WHERE user_id=%s",
                    (name, password_hash, role, found["user_id"]),
                )
                continue
            cur.execute(
                """
                INSERT INTO users (name, email, password_hash, role, email_verified)
                VALUES (%s, %s, %s, %s, 1)
                """,
                (name, email, password_hash, role),
            )


def list_tables(db_config: Mapping) -> list[str]:
    with db_cursor(_connection(db_config), dictionary=False) as (_, cur):
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
