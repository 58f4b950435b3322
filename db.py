import sqlite3
import aiosqlite
import os
import re
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional

from config import YamlConfig
from settings_schema import validate_settings


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    weight REAL NOT NULL DEFAULT 85,
                    level TEXT NOT NULL DEFAULT 'Intermediário',
                    photo_url TEXT,
                    updated_at TEXT
                );""",
            ["id", "name", "weight", "level", "photo_url", "updated_at"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    last_weight REAL NOT NULL DEFAULT 0,
                    last_date TEXT NOT NULL DEFAULT '-',
                    pb_weight REAL NOT NULL DEFAULT 0,
                    pb_date TEXT NOT NULL DEFAULT '-',
                    avg_volume REAL NOT NULL DEFAULT 0,
                    progress INTEGER NOT NULL DEFAULT 60,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "name",
                "category",
                "last_weight",
                "last_date",
                "pb_weight",
                "pb_date",
                "avg_volume",
                "progress",
                "created_at",
            ],
        ),
        "weight_logs": (
            """CREATE TABLE weight_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_id TEXT NOT NULL,
                    weight REAL NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('LOAD', 'PR')),
                    date TEXT NOT NULL,
                    logged_at TEXT NOT NULL,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["id", "exercise_id", "weight", "type", "date", "logged_at"],
        ),
        "goals": (
            """CREATE TABLE goals (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );""",
            ["id", "user_id", "title", "description", "created_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    _DEFAULT_SETTINGS = {
        "user_id": "local",
        "user_name": "Atleta Evolution",
        "timeframe": "WEEK",
        "language": "pt",
        "theme": "dark",
        "unknown_date_policy": "january",
        "log_format": "text",
    }

    def __init__(self, db_path: str = "evolution.db", db_url: str | None = None) -> None:
        self._db_url = db_url or os.environ.get("DB_URL")
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()
        self.vacuum()

    @property
    def _is_postgres(self) -> bool:
        return bool(self._db_url and self._db_url.startswith("postgresql"))

    @staticmethod
    def _pg_query(query: str, style: str = "format") -> str:
        """Rewrite ``?`` placeholders for psycopg2 (``%s``) or asyncpg (``$n``)."""
        if style == "format":
            return query.replace("?", "%s")
        counter = iter(range(1, query.count("?") + 1))
        return re.sub(r"\?", lambda _m: f"${next(counter)}", query)

    @contextmanager
    def _connection(self):
        if self._is_postgres:
            import psycopg2
            connection = psycopg2.connect(self._db_url)
        else:
            connection = sqlite3.connect(self._db_path)
            connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            if not self._is_postgres:
                conn.execute("PRAGMA foreign_keys=off;")
                conn.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            if not self._is_postgres:
                conn.execute("PRAGMA legacy_alter_table=off;")
                conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        if self._is_postgres:
            sql_pg = re.sub(
                r"INTEGER PRIMARY KEY AUTOINCREMENT",
                "SERIAL PRIMARY KEY",
                sql,
            )
            sql_pg = sql_pg.replace("CREATE TABLE", "CREATE TABLE IF NOT EXISTS")
            conn.cursor().execute(sql_pg)
            return

        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("last_date", "pb_date"):
                        return "'-'"
                    if col in ("last_weight", "pb_weight", "avg_volume"):
                        return "0"
                    if col == "progress":
                        return "60"
                    if col == "weight":
                        return "85"
                    if col == "level":
                        return "'Intermediário'"
                    if col in ("created_at", "logged_at"):
                        return "datetime('now')"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        query = (
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO NOTHING;"
        )
        if self._is_postgres:
            query = self._pg_query(query)
        with self._connection() as conn:
            cursor = conn.cursor()
            for key, value in self._DEFAULT_SETTINGS.items():
                cursor.execute(query, (key, value))

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        if self._is_postgres:
            return
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        if self._is_postgres:
            query = self._pg_query(query)
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        if self._is_postgres:
            query = self._pg_query(query)
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        if self._is_postgres:
            import asyncpg
            conn = await asyncpg.connect(self._db_url)
            try:
                yield conn
            finally:
                await conn.close()
        else:
            conn = await aiosqlite.connect(self._db_path)
            try:
                await conn.execute("PRAGMA foreign_keys=on;")
                yield conn
                await conn.commit()
            finally:
                await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            if self._is_postgres:
                await conn.execute(self._pg_query(query, "numeric"), *params)
                # only weight_logs has a serial key
                if not re.match(r"\s*INSERT INTO weight_logs", query):
                    return 0
                rowid = await conn.fetchval("SELECT LASTVAL();")
                return int(rowid) if rowid is not None else 0
            else:
                cursor = await conn.execute(query, params)
                await conn.commit()
                return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            if self._is_postgres:
                rows = await conn.fetch(self._pg_query(query, "numeric"), *params)
                return [tuple(r) for r in rows]
            else:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
                return [tuple(r) for r in rows]


def _timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class AsyncProfileRepository(AsyncBaseRepository):
    """Async repository for the per-user profile row."""

    async def fetch(
        self, user_id: str
    ) -> Optional[Tuple[str, float, str, Optional[str]]]:
        rows = await self.fetch_all(
            "SELECT name, weight, level, photo_url FROM users WHERE id = ?;",
            (user_id,),
        )
        return rows[0] if rows else None

    async def save(
        self,
        user_id: str,
        name: str,
        weight: float,
        level: str,
        photo_url: Optional[str],
    ) -> None:
        await self.execute(
            "INSERT INTO users (id, name, weight, level, photo_url, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, weight=excluded.weight, "
            "level=excluded.level, photo_url=excluded.photo_url, updated_at=excluded.updated_at;",
            (user_id, name, weight, level, photo_url, _timestamp()),
        )


class AsyncExerciseRepository(AsyncBaseRepository):
    """Async repository for exercise rows owned by a user."""

    _COLUMNS = (
        "id, name, category, last_weight, last_date, pb_weight, pb_date, "
        "avg_volume, progress"
    )
    _UPDATABLE = (
        "name",
        "category",
        "last_weight",
        "last_date",
        "pb_weight",
        "pb_date",
        "avg_volume",
        "progress",
    )

    async def add(
        self,
        user_id: str,
        exercise_id: str,
        name: str,
        category: str,
        last_weight: float = 0.0,
        last_date: str = "-",
        pb_weight: float = 0.0,
        pb_date: str = "-",
        avg_volume: float = 0.0,
        progress: int = 60,
        created_at: str | None = None,
    ) -> str:
        await self.execute(
            "INSERT INTO exercises (id, user_id, name, category, last_weight, last_date, "
            "pb_weight, pb_date, avg_volume, progress, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                exercise_id,
                user_id,
                name,
                category,
                last_weight,
                last_date,
                pb_weight,
                pb_date,
                avg_volume,
                progress,
                created_at or _timestamp(),
            ),
        )
        return exercise_id

    async def update(self, exercise_id: str, **fields) -> None:
        unknown = set(fields) - set(self._UPDATABLE)
        if unknown:
            raise ValueError(f"unknown exercise fields: {sorted(unknown)}")
        rows = await self.fetch_all(
            "SELECT id FROM exercises WHERE id = ?;", (exercise_id,)
        )
        if not rows:
            raise ValueError("exercise not found")
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        await self.execute(
            f"UPDATE exercises SET {assignments} WHERE id = ?;",
            (*fields.values(), exercise_id),
        )

    async def remove(self, exercise_id: str) -> None:
        await self.execute(
            "DELETE FROM weight_logs WHERE exercise_id = ?;", (exercise_id,)
        )
        await self.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))

    async def fetch_for_user(self, user_id: str) -> List[Tuple]:
        return await self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC;",
            (user_id,),
        )


class AsyncWeightLogRepository(AsyncBaseRepository):
    """Append-only log of superseded loads and records."""

    async def add(
        self,
        exercise_id: str,
        weight: float,
        log_type: str,
        date: str,
        logged_at: str | None = None,
    ) -> int:
        if log_type not in ("LOAD", "PR"):
            raise ValueError("log type must be LOAD or PR")
        return await self.execute(
            "INSERT INTO weight_logs (exercise_id, weight, type, date, logged_at) "
            "VALUES (?, ?, ?, ?, ?);",
            (exercise_id, weight, log_type, date, logged_at or _timestamp()),
        )

    async def fetch_recent(
        self, exercise_id: str, limit: int = 3
    ) -> List[Tuple[float, str, str]]:
        return await self.fetch_all(
            "SELECT weight, date, type FROM weight_logs WHERE exercise_id = ? "
            "ORDER BY id DESC LIMIT ?;",
            (exercise_id, limit),
        )


class AsyncGoalRepository(AsyncBaseRepository):
    """Async repository for training goals."""

    async def add(
        self,
        user_id: str,
        goal_id: str,
        title: str,
        description: str,
        created_at: str | None = None,
    ) -> str:
        await self.execute(
            "INSERT INTO goals (id, user_id, title, description, created_at) "
            "VALUES (?, ?, ?, ?, ?);",
            (goal_id, user_id, title, description, created_at or _timestamp()),
        )
        return goal_id

    async def delete(self, goal_id: str) -> None:
        await self.execute("DELETE FROM goals WHERE id = ?;", (goal_id,))

    async def fetch_for_user(self, user_id: str) -> List[Tuple[str, str, str]]:
        return await self.fetch_all(
            "SELECT id, title, description FROM goals WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC;",
            (user_id,),
        )


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "evolution.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        return {k: v for k, v in rows}

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        query = (
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;"
        )
        if self._is_postgres:
            query = self._pg_query(query)
        with self._connection() as conn:
            cursor = conn.cursor()
            for key, value in data.items():
                cursor.execute(query, (key, str(value)))

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        validate_settings({key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()
