"""SQLite-backed store for messages, persona wallets and event records."""

from __future__ import annotations

import asyncio
import json
import secrets
import time
import weakref
from pathlib import Path
from typing import Any, Callable

import aiosqlite
from loguru import logger

from huddle.storage.errors import StoreError
from huddle.storage.models import ChatMessage, EventRecord, PersonaWallet
from huddle.utils.helpers import now_ms

# Sequence cache size before entries the clock has passed are dropped.
_SEQ_CACHE_LIMIT = 1024

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS messages (
        session_id TEXT NOT NULL,
        seq INTEGER NOT NULL,
        author TEXT NOT NULL,
        body TEXT NOT NULL,
        created_by TEXT NOT NULL DEFAULT '',
        character_id TEXT NOT NULL DEFAULT '',
        metadata TEXT NOT NULL DEFAULT '{}',
        expires_at INTEGER NOT NULL,
        PRIMARY KEY (session_id, seq)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS wallets (
        owner TEXT NOT NULL,
        persona TEXT NOT NULL,
        wallet_id TEXT NOT NULL,
        address TEXT NOT NULL,
        private_key TEXT NOT NULL,
        basename TEXT,
        created_at INTEGER NOT NULL,
        PRIMARY KEY (owner, persona)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        session_id TEXT NOT NULL,
        seq INTEGER NOT NULL,
        created_by TEXT NOT NULL,
        character_id TEXT NOT NULL,
        event_type TEXT NOT NULL,
        data TEXT NOT NULL DEFAULT '{}'
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_session ON events(session_id, seq)",
]


def _persona_key(persona: str) -> str:
    return (persona or "").strip().lower()


class HuddleStore:
    """
    Conversation log, wallet table and event log in one SQLite file.

    Each operation opens its own connection. Wallet creation is an
    upsert-if-absent: concurrent callers for the same (owner, persona)
    all observe the single stored row.
    """

    def __init__(self, db_path: Path, message_ttl: int = 3600):
        self.db_path = Path(db_path)
        self.message_ttl = message_ttl
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._seq_lock = asyncio.Lock()
        self._last_seq: dict[str, int] = {}
        self._wallet_locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def initialize(self) -> None:
        """Create tables if needed. Safe to call repeatedly."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                async with aiosqlite.connect(str(self.db_path)) as db:
                    for stmt in _SCHEMA:
                        await db.execute(stmt)
                    await db.commit()
            except aiosqlite.Error as e:
                raise StoreError(f"Could not initialise store at {self.db_path}: {e}") from e
            self._initialized = True
            logger.debug(f"Store ready at {self.db_path}")

    async def _next_seq(self, session_id: str) -> int:
        async with self._seq_lock:
            now = now_ms()
            seq = max(now, self._last_seq.get(session_id, 0) + 1)
            if len(self._last_seq) >= _SEQ_CACHE_LIMIT:
                # An entry behind the clock no longer changes the next sequence.
                self._last_seq = {k: v for k, v in self._last_seq.items() if v >= now}
            self._last_seq[session_id] = seq
            return seq

    # ── Messages ──

    async def append_message(
        self,
        session_id: str,
        author: str,
        body: str,
        *,
        created_by: str = "",
        character_id: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        """Append one message to the session log."""
        await self.initialize()
        message = ChatMessage(
            session_id=session_id,
            seq=await self._next_seq(session_id),
            author=author,
            body=body,
            created_by=created_by,
            character_id=character_id,
            metadata=dict(metadata or {}),
            expires_at=int(time.time()) + self.message_ttl,
        )
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(
                    "INSERT INTO messages (session_id, seq, author, body, created_by, character_id, metadata, expires_at)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        message.session_id,
                        message.seq,
                        message.author,
                        message.body,
                        message.created_by,
                        message.character_id,
                        json.dumps(message.metadata, default=str),
                        message.expires_at,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to append message to {session_id}: {e}") from e
        return message

    async def history(self, session_id: str, limit: int = 20) -> list[ChatMessage]:
        """Most recent unexpired messages, oldest first."""
        await self.initialize()
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT * FROM messages WHERE session_id = ? AND expires_at > ?"
                    " ORDER BY seq DESC LIMIT ?",
                    (session_id, int(time.time()), limit),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read history for {session_id}: {e}") from e
        return [
            ChatMessage(
                session_id=row["session_id"],
                seq=row["seq"],
                author=row["author"],
                body=row["body"],
                created_by=row["created_by"],
                character_id=row["character_id"],
                metadata=json.loads(row["metadata"] or "{}"),
                expires_at=row["expires_at"],
            )
            for row in reversed(rows)
        ]

    async def purge_expired(self) -> int:
        """Delete expired messages. Returns how many were removed."""
        await self.initialize()
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                cursor = await db.execute(
                    "DELETE FROM messages WHERE expires_at <= ?", (int(time.time()),)
                )
                await db.commit()
                return cursor.rowcount or 0
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to purge expired messages: {e}") from e

    # ── Wallets ──

    @staticmethod
    def _row_to_wallet(row: aiosqlite.Row) -> PersonaWallet:
        return PersonaWallet(
            owner=row["owner"],
            persona=row["persona"],
            address=row["address"],
            private_key=row["private_key"],
            wallet_id=row["wallet_id"],
            basename=row["basename"],
            created_at=row["created_at"],
        )

    async def get_wallet(self, owner: str, persona: str) -> PersonaWallet | None:
        """Look up the wallet for (owner, persona)."""
        await self.initialize()
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT * FROM wallets WHERE owner = ? AND persona = ?",
                    (owner, _persona_key(persona)),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read wallet {owner}#{persona}: {e}") from e
        return self._row_to_wallet(row) if row else None

    async def create_wallet_if_absent(
        self,
        owner: str,
        persona: str,
        keygen: Callable[[], tuple[str, str]],
    ) -> tuple[PersonaWallet, bool]:
        """
        Return the wallet for (owner, persona), creating it only if missing.

        Args:
            owner: The human user who owns the persona's wallet.
            persona: Persona name (case-insensitive).
            keygen: Returns ``(address, private_key)`` for a fresh keypair.

        Returns:
            ``(wallet, created)`` where ``created`` is False when the pair
            already had a wallet.
        """
        key = (owner, _persona_key(persona))
        lock = self._wallet_locks.setdefault(key, asyncio.Lock())
        async with lock:
            existing = await self.get_wallet(owner, persona)
            if existing:
                return existing, False

            address, private_key = keygen()
            wallet_id = f"wallet_{now_ms()}_{secrets.token_hex(4)}"
            try:
                async with aiosqlite.connect(str(self.db_path)) as db:
                    cursor = await db.execute(
                        "INSERT OR IGNORE INTO wallets (owner, persona, wallet_id, address, private_key, created_at)"
                        " VALUES (?, ?, ?, ?, ?, ?)",
                        (owner, key[1], wallet_id, address, private_key, now_ms()),
                    )
                    await db.commit()
                    created = bool(cursor.rowcount)
            except aiosqlite.Error as e:
                raise StoreError(f"Failed to create wallet {owner}#{persona}: {e}") from e

            # Another process may have won the insert; the stored row is authoritative.
            stored = await self.get_wallet(owner, persona)
            if stored is None:
                raise StoreError(f"Wallet {owner}#{persona} missing after insert")
            if created:
                logger.info(f"Created wallet {stored.address} for {owner}#{persona}")
            return stored, created

    async def set_basename(self, owner: str, persona: str, basename: str) -> None:
        await self.initialize()
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(
                    "UPDATE wallets SET basename = ? WHERE owner = ? AND persona = ?",
                    (basename, owner, _persona_key(persona)),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to store basename for {owner}#{persona}: {e}") from e

    # ── Events ──

    async def record_event(
        self,
        session_id: str,
        created_by: str,
        character_id: str,
        event_type: str,
        data: dict[str, Any] | None = None,
    ) -> EventRecord:
        """Append a durable event record for the session."""
        await self.initialize()
        record = EventRecord(
            session_id=session_id,
            seq=now_ms(),
            created_by=created_by,
            character_id=character_id,
            event_type=event_type,
            data=dict(data or {}),
        )
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                await db.execute(
                    "INSERT INTO events (session_id, seq, created_by, character_id, event_type, data)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        record.session_id,
                        record.seq,
                        record.created_by,
                        record.character_id,
                        record.event_type,
                        json.dumps(record.data, default=str),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to record {event_type} for {session_id}: {e}") from e
        return record

    async def events(self, session_id: str, event_type: str | None = None) -> list[EventRecord]:
        await self.initialize()
        sql = "SELECT * FROM events WHERE session_id = ?"
        params: list[Any] = [session_id]
        if event_type:
            sql += " AND event_type = ?"
            params.append(event_type)
        sql += " ORDER BY seq"
        try:
            async with aiosqlite.connect(str(self.db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read events for {session_id}: {e}") from e
        return [
            EventRecord(
                session_id=row["session_id"],
                seq=row["seq"],
                created_by=row["created_by"],
                character_id=row["character_id"],
                event_type=row["event_type"],
                data=json.loads(row["data"] or "{}"),
            )
            for row in rows
        ]
