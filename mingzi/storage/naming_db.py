"""Naming database storage for Mingzi.

This module provides the schema and helper operations for ``mingzi.db``:
customers and their credit ledger, per-IP free usage counters, generation
batches, the names inside them, and an append-only generation log.

Every sqlite3 failure surfaces as ``PersistenceError``.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from ..core.models import GenerationBatch, NameRecord
from ..errors import PersistenceError
from .schemas import CreditTransaction, CustomerRecord, GeneratedNameRow


def _now_iso() -> str:
    return datetime.now().isoformat()


def _dumps(data: Any) -> str:
    return json.dumps(data, default=str, ensure_ascii=False)


def _loads(text: str | None) -> Any:
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {}


class NamingDB:
    """SQLite-backed store for the naming service."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._set_pragmas()
        self.init_schema()

    def _set_pragmas(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        self.conn.commit()

    def init_schema(self) -> None:
        """Create schema and indexes."""
        cursor = self.conn.cursor()
        cursor.executescript(
            """
            CREATE TABLE IF NOT EXISTS customers (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL UNIQUE,
                email TEXT,
                credits INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS credits_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id TEXT NOT NULL,
                amount INTEGER NOT NULL,
                type TEXT NOT NULL,
                description TEXT NOT NULL,
                metadata_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (customer_id) REFERENCES customers(id)
            );

            CREATE TABLE IF NOT EXISTS payment_events (
                event_key TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                credits INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ip_usage (
                client_ip TEXT NOT NULL,
                usage_date TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (client_ip, usage_date)
            );

            CREATE TABLE IF NOT EXISTS generation_batches (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                english_name TEXT NOT NULL,
                gender TEXT NOT NULL,
                birth_year TEXT,
                personality_traits TEXT,
                name_preferences TEXT,
                plan_type TEXT NOT NULL,
                credits_used INTEGER NOT NULL DEFAULT 0,
                names_count INTEGER NOT NULL DEFAULT 0,
                metadata_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS generated_names (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                batch_id TEXT NOT NULL,
                chinese_name TEXT NOT NULL,
                pinyin TEXT NOT NULL,
                characters_json TEXT NOT NULL,
                meaning TEXT,
                cultural_notes TEXT,
                personality_match TEXT,
                style TEXT NOT NULL,
                position_in_batch INTEGER NOT NULL,
                generation_round INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (batch_id) REFERENCES generation_batches(id)
            );

            CREATE TABLE IF NOT EXISTS name_generation_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                plan_type TEXT NOT NULL,
                credits_used INTEGER NOT NULL,
                names_generated INTEGER NOT NULL,
                english_name TEXT,
                gender TEXT,
                birth_year TEXT,
                has_personality_traits INTEGER DEFAULT 0,
                has_name_preferences INTEGER DEFAULT 0,
                metadata_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_credits_history_customer ON credits_history(customer_id);
            CREATE INDEX IF NOT EXISTS idx_batches_user ON generation_batches(user_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_names_batch_round ON generated_names(batch_id, generation_round);
            CREATE INDEX IF NOT EXISTS idx_generation_logs_user ON name_generation_logs(user_id);
            """
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "NamingDB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Cursor]:
        """Run a unit of work atomically, translating sqlite errors."""
        try:
            with self.conn:
                yield self.conn.cursor()
        except sqlite3.Error as exc:
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    # ── Customers and credits ──

    @staticmethod
    def _customer_from_row(row: sqlite3.Row) -> CustomerRecord:
        return CustomerRecord(
            id=row["id"],
            user_id=row["user_id"],
            email=row["email"],
            credits=row["credits"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_customer(self, user_id: str) -> CustomerRecord | None:
        with self._transaction("get_customer") as cursor:
            cursor.execute("SELECT * FROM customers WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
        return self._customer_from_row(row) if row else None

    def ensure_customer(self, user_id: str, email: str | None = None) -> CustomerRecord:
        """Fetch the customer for `user_id`, creating a zero-balance row if needed."""
        with self._transaction("ensure_customer") as cursor:
            cursor.execute(
                """
                INSERT OR IGNORE INTO customers (id, user_id, email, credits, created_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (str(uuid.uuid4()), user_id, email, _now_iso()),
            )
            if email:
                cursor.execute(
                    "UPDATE customers SET email = ? WHERE user_id = ? AND email IS NULL",
                    (email, user_id),
                )
            cursor.execute("SELECT * FROM customers WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
        return self._customer_from_row(row)

    def _record_transaction(self, cursor: sqlite3.Cursor, tx: CreditTransaction) -> None:
        cursor.execute(
            """
            INSERT INTO credits_history
            (customer_id, amount, type, description, metadata_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                tx.customer_id,
                tx.amount,
                tx.type,
                tx.description,
                _dumps(tx.metadata),
                tx.created_at or _now_iso(),
            ),
        )

    def deduct_credits(
        self,
        user_id: str,
        amount: int,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> int | None:
        """Atomically subtract `amount` credits.

        Returns the new balance, or None when the customer is unknown or the
        balance is short. The history row is written in the same transaction.
        """
        with self._transaction("deduct_credits") as cursor:
            cursor.execute("SELECT * FROM customers WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            cursor.execute(
                """
                UPDATE customers SET credits = credits - ?, updated_at = ?
                WHERE user_id = ? AND credits >= ?
                """,
                (amount, _now_iso(), user_id, amount),
            )
            if cursor.rowcount == 0:
                return None
            before = int(row["credits"])
            after = before - amount
            self._record_transaction(
                cursor,
                CreditTransaction(
                    customer_id=row["id"],
                    amount=amount,
                    type="subtract",
                    description=description,
                    metadata={
                        **(metadata or {}),
                        "credits_before": before,
                        "credits_after": after,
                    },
                ),
            )
        return after

    def grant_credits(
        self,
        user_id: str,
        amount: int,
        description: str,
        metadata: dict[str, Any] | None = None,
        email: str | None = None,
        event_key: str | None = None,
    ) -> int | None:
        """Add credits (creating the customer if needed). Returns the new balance.

        With `event_key`, the grant is applied at most once per key: a repeated
        key changes nothing and returns None.
        """
        if amount <= 0:
            raise ValueError(f"Credit grant must be positive, got {amount}")
        customer = self.ensure_customer(user_id, email)
        with self._transaction("grant_credits") as cursor:
            if event_key is not None:
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO payment_events (event_key, user_id, credits, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (event_key, user_id, amount, _now_iso()),
                )
                if cursor.rowcount == 0:
                    return None
            cursor.execute(
                "UPDATE customers SET credits = credits + ?, updated_at = ? WHERE id = ?",
                (amount, _now_iso(), customer.id),
            )
            cursor.execute("SELECT credits FROM customers WHERE id = ?", (customer.id,))
            after = int(cursor.fetchone()["credits"])
            self._record_transaction(
                cursor,
                CreditTransaction(
                    customer_id=customer.id,
                    amount=amount,
                    type="add",
                    description=description,
                    metadata={
                        **(metadata or {}),
                        "credits_before": after - amount,
                        "credits_after": after,
                    },
                ),
            )
        return after

    def get_credit_history(self, user_id: str) -> list[dict[str, Any]]:
        with self._transaction("get_credit_history") as cursor:
            cursor.execute(
                """
                SELECT h.amount, h.type, h.description, h.metadata_json, h.created_at
                FROM credits_history h
                JOIN customers c ON c.id = h.customer_id
                WHERE c.user_id = ?
                ORDER BY h.id
                """,
                (user_id,),
            )
            rows = cursor.fetchall()
        return [
            {
                "amount": row["amount"],
                "type": row["type"],
                "description": row["description"],
                "metadata": _loads(row["metadata_json"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]

    # ── Anonymous usage ──

    def consume_ip_quota(self, client_ip: str, usage_date: str, limit: int) -> bool:
        """Count one generation for `client_ip` on `usage_date` if under `limit`.

        Returns False (and counts nothing) once the limit is reached.
        """
        if limit <= 0:
            return False
        with self._transaction("consume_ip_quota") as cursor:
            cursor.execute(
                """
                INSERT INTO ip_usage (client_ip, usage_date, count)
                VALUES (?, ?, 1)
                ON CONFLICT(client_ip, usage_date)
                DO UPDATE SET count = count + 1 WHERE count < ?
                """,
                (client_ip, usage_date, limit),
            )
            return cursor.rowcount > 0

    def get_ip_usage(self, client_ip: str, usage_date: str) -> int:
        with self._transaction("get_ip_usage") as cursor:
            cursor.execute(
                "SELECT count FROM ip_usage WHERE client_ip = ? AND usage_date = ?",
                (client_ip, usage_date),
            )
            row = cursor.fetchone()
        return int(row["count"]) if row else 0

    # ── Batches ──

    @staticmethod
    def _batch_from_row(row: sqlite3.Row) -> GenerationBatch:
        return GenerationBatch(
            id=row["id"],
            user_id=row["user_id"],
            english_name=row["english_name"],
            gender=row["gender"],
            birth_year=row["birth_year"],
            personality_traits=row["personality_traits"],
            name_preferences=row["name_preferences"],
            plan_type=row["plan_type"],
            credits_used=row["credits_used"],
            names_count=row["names_count"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            metadata=_loads(row["metadata_json"]),
        )

    def create_batch(
        self,
        user_id: str,
        english_name: str,
        gender: str,
        plan_type: str,
        credits_used: int,
        names_count: int,
        birth_year: str | None = None,
        personality_traits: str | None = None,
        name_preferences: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> GenerationBatch:
        batch_id = str(uuid.uuid4())
        with self._transaction("create_batch") as cursor:
            cursor.execute(
                """
                INSERT INTO generation_batches
                (id, user_id, english_name, gender, birth_year, personality_traits,
                 name_preferences, plan_type, credits_used, names_count, metadata_json,
                 created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    batch_id,
                    user_id,
                    english_name,
                    gender,
                    birth_year,
                    personality_traits,
                    name_preferences,
                    plan_type,
                    credits_used,
                    names_count,
                    _dumps(metadata or {}),
                    _now_iso(),
                ),
            )
            cursor.execute("SELECT * FROM generation_batches WHERE id = ?", (batch_id,))
            row = cursor.fetchone()
        return self._batch_from_row(row)

    def get_batch(self, batch_id: str, user_id: str) -> GenerationBatch | None:
        """Fetch a batch only if it belongs to `user_id`."""
        with self._transaction("get_batch") as cursor:
            cursor.execute(
                "SELECT * FROM generation_batches WHERE id = ? AND user_id = ?",
                (batch_id, user_id),
            )
            row = cursor.fetchone()
        return self._batch_from_row(row) if row else None

    def list_batches(self, user_id: str, limit: int = 20) -> list[GenerationBatch]:
        with self._transaction("list_batches") as cursor:
            cursor.execute(
                """
                SELECT * FROM generation_batches
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, int(limit)),
            )
            rows = cursor.fetchall()
        return [self._batch_from_row(row) for row in rows]

    def next_generation_round(self, batch_id: str) -> int:
        with self._transaction("next_generation_round") as cursor:
            cursor.execute(
                "SELECT MAX(generation_round) AS max_round FROM generated_names WHERE batch_id = ?",
                (batch_id,),
            )
            row = cursor.fetchone()
        current = row["max_round"] if row and row["max_round"] is not None else 0
        return int(current) + 1

    def add_to_batch(
        self, batch_id: str, names_added: int, credits_added: int
    ) -> GenerationBatch:
        with self._transaction("add_to_batch") as cursor:
            cursor.execute(
                """
                UPDATE generation_batches
                SET names_count = names_count + ?, credits_used = credits_used + ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (names_added, credits_added, _now_iso(), batch_id),
            )
            cursor.execute("SELECT * FROM generation_batches WHERE id = ?", (batch_id,))
            row = cursor.fetchone()
        if row is None:
            raise PersistenceError(f"add_to_batch failed: batch {batch_id} not found")
        return self._batch_from_row(row)

    # ── Names ──

    def save_generated_names(
        self,
        batch_id: str,
        names: list[NameRecord],
        generation_round: int,
    ) -> None:
        now = _now_iso()
        rows = [
            (
                batch_id,
                name.chinese,
                name.pinyin,
                _dumps([c.model_dump() for c in name.characters]),
                name.meaning,
                name.cultural_notes,
                name.personality_match,
                name.style,
                index,
                generation_round,
                now,
            )
            for index, name in enumerate(names)
        ]
        with self._transaction("save_generated_names") as cursor:
            cursor.executemany(
                """
                INSERT INTO generated_names
                (batch_id, chinese_name, pinyin, characters_json, meaning, cultural_notes,
                 personality_match, style, position_in_batch, generation_round, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

    def get_batch_names(self, batch_id: str) -> list[GeneratedNameRow]:
        with self._transaction("get_batch_names") as cursor:
            cursor.execute(
                """
                SELECT * FROM generated_names
                WHERE batch_id = ?
                ORDER BY generation_round, position_in_batch
                """,
                (batch_id,),
            )
            rows = cursor.fetchall()
        return [
            GeneratedNameRow(
                batch_id=row["batch_id"],
                chinese_name=row["chinese_name"],
                pinyin=row["pinyin"],
                characters=_loads(row["characters_json"]) or [],
                meaning=row["meaning"] or "",
                cultural_notes=row["cultural_notes"] or "",
                personality_match=row["personality_match"] or "",
                style=row["style"],
                position_in_batch=row["position_in_batch"],
                generation_round=row["generation_round"],
            )
            for row in rows
        ]

    # ── Logs ──

    def log_generation(
        self,
        user_id: str,
        plan_type: str,
        credits_used: int,
        names_generated: int,
        english_name: str | None = None,
        gender: str | None = None,
        birth_year: str | None = None,
        has_personality_traits: bool = False,
        has_name_preferences: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        with self._transaction("log_generation") as cursor:
            cursor.execute(
                """
                INSERT INTO name_generation_logs
                (user_id, plan_type, credits_used, names_generated, english_name, gender,
                 birth_year, has_personality_traits, has_name_preferences, metadata_json,
                 created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    plan_type,
                    credits_used,
                    names_generated,
                    english_name,
                    gender,
                    birth_year,
                    int(has_personality_traits),
                    int(has_name_preferences),
                    _dumps(metadata or {}),
                    _now_iso(),
                ),
            )

    def run_select(
        self,
        query: str,
        params: tuple[Any, ...] = (),
    ) -> list[dict[str, Any]]:
        with self._transaction("run_select") as cursor:
            cursor.execute(query.strip().rstrip(";"), params)
            cols = [d[0] for d in cursor.description or []]
            rows = cursor.fetchall()
        return [{k: row[idx] for idx, k in enumerate(cols)} for row in rows]


def open_naming_db(path: Path | str) -> NamingDB:
    """Open ``mingzi.db`` and ensure schema exists."""
    return NamingDB(path)
