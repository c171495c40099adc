from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Mapping, Optional

import mysql.connector
from mysql.connector import pooling

DEFAULT_POOL_SIZE = 5


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = DEFAULT_POOL_SIZE

    @classmethod
    def from_mapping(cls, values: Mapping) -> "DBConfig":
        """Build from a settings DB_CONFIG dict; missing keys fall back to local defaults."""
        return cls(
            host=str(values.get("host", "localhost")),
            port=int(values.get("port", 3306)),
            user=str(values.get("user", "root")),
            password=str(values.get("password", "")),
            database=str(values.get("database", "virtual_classroom")),
            pool_size=int(values.get("pool_size", DEFAULT_POOL_SIZE)),
        )


class DatabaseConnection:
    """Process-wide connection source backed by a mysql-connector pool.

    Every repository call borrows a connection and `close()` hands it back.
    Sessions run in UTC so DATETIME columns round-trip as naive UTC values.
    """

    _instance: Optional["DatabaseConnection"] = None
    _lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._lock:
            if cls._instance is None:
                cls._instance = DatabaseConnection(config)
            return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        with self._lock:
            if self._pool is None:
                # created lazily so importing the app never needs a running server
                self._pool = pooling.MySQLConnectionPool(
                    pool_name="virtual_classroom",
                    pool_size=self._config.pool_size,
                    pool_reset_session=True,
                    time_zone="+00:00",
                    **self._server_args(),
                    database=self._config.database,
                )
        return self._pool.get_connection()

    def server_connect(self):
        """A direct connection without a default schema (for CREATE DATABASE)."""
        return mysql.connector.connect(**self._server_args(), use_pure=True)

    def _server_args(self) -> dict:
        return {
            "host": self._config.host,
            "port": int(self._config.port),
            "user": self._config.user,
            "password": self._config.password,
        }
