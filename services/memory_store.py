"""
Long-term conversation memory backed by SQLite.
Stores finished turns and retrieves related ones to enrich new prompts.
"""
import asyncio
import re
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional

from config import Config
from models.chat_models import MemoryOptions
from utils.constants import MEMORY_CONTEXT_SEPARATOR, MEMORY_ENRICHED_PROMPT
from utils.errors import PersistenceFailure
from utils.logger import get_logger

logger = get_logger("memory_store")

_TERM_PATTERN = re.compile(r"\w+")


class MemoryStore:
    """
    SQLite-backed memory service.

    Blocking database work runs in worker threads; each thread keeps its own
    connection, so ``db_path`` must be a file (not ``:memory:``).
    """

    MIN_TERM_LENGTH = 3

    def __init__(self, db_path: Optional[str] = None, scan_limit: int = Config.MEMORY_SCAN_LIMIT):
        if db_path is None:
            db_path = Config.MEMORY_DB_PATH
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._db_path = db_path
        self._scan_limit = scan_limit
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._init_db()

        logger.info(f"Memory store initialized with SQLite: {self._db_path}")

    def _get_conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'conn'):
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return self._local.conn

    def _init_db(self) -> None:
        conn = self._get_conn()
        cursor = conn.cursor()

        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS conversation_turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                prompt TEXT NOT NULL,
                response TEXT NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_turns_created_at
            ON conversation_turns(created_at)
        """)
        conn.commit()

    @classmethod
    def _terms(cls, text: str) -> set[str]:
        return {t for t in _TERM_PATTERN.findall(text.lower()) if len(t) >= cls.MIN_TERM_LENGTH}

    # Synchronous primitives

    def _insert_turn(self, prompt: str, response: str) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "INSERT INTO conversation_turns (prompt, response, created_at) VALUES (?, ?, ?)",
                (prompt, response, time.time())
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"SQLite write failed: {e}") from e
        return cursor.lastrowid

    def _recent_turns(self) -> list[sqlite3.Row]:
        cursor = self._get_conn().execute(
            "SELECT id, prompt, response FROM conversation_turns ORDER BY created_at DESC, id DESC LIMIT ?",
            (self._scan_limit,)
        )
        return cursor.fetchall()

    def _search(self, text: str, limit: int, smart_filter: bool) -> list[sqlite3.Row]:
        query_terms = self._terms(text)
        normalized = " ".join(text.lower().split())
        scored = []

        for recency, row in enumerate(self._recent_turns()):
            if smart_filter and " ".join(row['prompt'].lower().split()) == normalized:
                continue
            overlap = len(query_terms & self._terms(f"{row['prompt']} {row['response']}"))
            if smart_filter and overlap == 0:
                continue
            scored.append((overlap, -recency, row))

        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [row for _, _, row in scored[:limit]]

    def _prompts_with_prefix(self, prefix: str, limit: int) -> list[str]:
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        cursor = self._get_conn().execute(
            """
            SELECT prompt, MAX(created_at) AS last_used FROM conversation_turns
            WHERE prompt LIKE ? ESCAPE '\\'
            GROUP BY prompt
            ORDER BY last_used DESC
            LIMIT ?
            """,
            (f"{escaped}%", limit)
        )
        return [row['prompt'] for row in cursor.fetchall()]

    def _count(self) -> int:
        return self._get_conn().execute("SELECT COUNT(*) FROM conversation_turns").fetchone()[0]

    # Memory service contract

    async def enrich_prompt(self, text: str, options: MemoryOptions) -> dict:
        """
        Augment ``text`` with related past turns.

        Returns:
            Dict with enriched_prompt, context_used, context_length, summaries_used
            and, in debug mode, debug_info
        """
        unchanged = {"enriched_prompt": text, "context_used": False, "context_length": 0, "summaries_used": 0}
        if not options.enabled:
            return unchanged

        rows = await asyncio.to_thread(self._search, text, options.context_window_size, options.smart_filter)
        if not rows:
            return unchanged

        snippets = [f"User: {row['prompt']}\nAssistant: {row['response']}" for row in rows]
        relevant_context = MEMORY_CONTEXT_SEPARATOR.join(snippets)

        result = {
            "enriched_prompt": MEMORY_ENRICHED_PROMPT.format(context=relevant_context, prompt=text),
            "context_used": True,
            "context_length": len(relevant_context),
            "summaries_used": len(rows),
        }
        if options.debug:
            result["debug_info"] = {"original_prompt": text, "context_sources": [row['id'] for row in rows]}
        return result

    async def store_conversation_turn(self, prompt: str, response: str) -> None:
        turn_id = await asyncio.to_thread(self._insert_turn, prompt, response)
        logger.debug(f"Memory SET: turn {turn_id}")

    async def recent_prompts(self, prefix: str, limit: int = Config.MAX_SUGGESTIONS) -> list[str]:
        """Most recently used distinct prompts starting with ``prefix`` (case-insensitive)."""
        return await asyncio.to_thread(self._prompts_with_prefix, prefix, limit)

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def close(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
