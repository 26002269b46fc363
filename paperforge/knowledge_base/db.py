"""SQLite storage for users, sessions, paper history and LLM usage."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import LLMUsageRecord, PaperPage, SavedPaper, User

DEFAULT_DB_PATH = Path("data/db/paperforge.sqlite")


class Database:
    """SQLite database for accounts and paper history.

    Every paper operation takes the owning ``user_id``; a paper that belongs
    to someone else behaves exactly like a paper that does not exist.
    """

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            # Shared between the event loop and FastAPI's threadpool
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
        return self._conn

    def initialize(self) -> None:
        """Create all tables if they don't exist."""
        self.conn.executescript(_SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # --- Users ---

    def insert_user(self, user: User, password_hash: str) -> str:
        user_id = user.id or str(uuid.uuid4())
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """INSERT INTO users (id, email, full_name, password_hash, created_at)
            VALUES (?, ?, ?, ?, ?)""",
            (user_id, user.email.lower(), user.full_name, password_hash, now),
        )
        self.conn.commit()
        return user_id

    def get_user_credentials(self, email: str) -> Optional[tuple[User, str]]:
        """Return the user and stored password hash for ``email``."""
        row = self.conn.execute(
            "SELECT * FROM users WHERE email = ?", (email.lower(),)
        ).fetchone()
        if row is None:
            return None
        return _row_to_user(row), row["password_hash"]

    # --- Sessions ---

    def insert_session(self, token: str, user_id: str) -> None:
        self.conn.execute(
            "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
            (token, user_id, datetime.utcnow().isoformat()),
        )
        self.conn.commit()

    def get_session_user(self, token: str) -> Optional[User]:
        row = self.conn.execute(
            """SELECT users.* FROM sessions
            JOIN users ON users.id = sessions.user_id
            WHERE sessions.token = ?""",
            (token,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_user(row)

    def delete_session(self, token: str) -> bool:
        cursor = self.conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
        self.conn.commit()
        return cursor.rowcount > 0

    # --- Papers ---

    def insert_paper(self, paper: SavedPaper) -> SavedPaper:
        paper_id = paper.id or str(uuid.uuid4())
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """INSERT INTO papers
            (id, user_id, title, topic, abstract, keywords, introduction,
             methodology, results, discussion, conclusion, references_,
             word_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                paper_id,
                paper.user_id,
                paper.title,
                paper.topic,
                paper.abstract,
                json.dumps(paper.keywords),
                paper.introduction,
                paper.methodology,
                paper.results,
                paper.discussion,
                paper.conclusion,
                json.dumps(paper.references),
                paper.word_count,
                now,
                now,
            ),
        )
        self.conn.commit()
        return paper.model_copy(
            update={
                "id": paper_id,
                "created_at": datetime.fromisoformat(now),
                "updated_at": datetime.fromisoformat(now),
            }
        )

    def get_paper(self, paper_id: str, user_id: str) -> Optional[SavedPaper]:
        row = self.conn.execute(
            "SELECT * FROM papers WHERE id = ? AND user_id = ?", (paper_id, user_id)
        ).fetchone()
        if row is None:
            return None
        return _row_to_paper(row)

    def list_papers(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
    ) -> PaperPage:
        """Newest-first page of a user's papers, optionally filtered by title/topic."""
        where = "WHERE user_id = ?"
        params: list = [user_id]
        if search:
            where += " AND (title LIKE ? ESCAPE '\\' OR topic LIKE ? ESCAPE '\\')"
            pattern = f"%{_escape_like(search)}%"
            params.extend([pattern, pattern])

        total = self.conn.execute(
            f"SELECT COUNT(*) FROM papers {where}", params
        ).fetchone()[0]
        rows = self.conn.execute(
            f"SELECT * FROM papers {where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return PaperPage(
            papers=[_row_to_paper(r) for r in rows],
            count=total,
            limit=limit,
            offset=offset,
        )

    def delete_paper(self, paper_id: str, user_id: str) -> bool:
        cursor = self.conn.execute(
            "DELETE FROM papers WHERE id = ? AND user_id = ?", (paper_id, user_id)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def count_papers(self, user_id: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM papers WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row[0]

    # --- LLM Usage ---

    def insert_llm_usage(self, record: LLMUsageRecord) -> str:
        rec_id = record.id or str(uuid.uuid4())
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """INSERT INTO llm_usage
            (id, model, task_type, prompt_tokens, completion_tokens, total_tokens,
             cost_usd, latency_ms, success, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                rec_id,
                record.model,
                record.task_type,
                record.prompt_tokens,
                record.completion_tokens,
                record.total_tokens,
                record.cost_usd,
                record.latency_ms,
                record.success,
                now,
            ),
        )
        self.conn.commit()
        return rec_id

    def get_llm_usage_summary(self) -> dict:
        rows = self.conn.execute(
            """SELECT model, task_type, COUNT(*) as calls,
            SUM(total_tokens) as tokens, SUM(cost_usd) as cost
            FROM llm_usage GROUP BY model, task_type"""
        ).fetchall()
        return {f"{r['model']}:{r['task_type']}": dict(r) for r in rows}


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
    )


def _row_to_paper(row: sqlite3.Row) -> SavedPaper:
    return SavedPaper(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        topic=row["topic"],
        abstract=row["abstract"],
        keywords=json.loads(row["keywords"]),
        introduction=row["introduction"],
        methodology=row["methodology"],
        results=row["results"],
        discussion=row["discussion"],
        conclusion=row["conclusion"],
        references=json.loads(row["references_"]),
        word_count=row["word_count"],
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
    )


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT,
    password_hash TEXT NOT NULL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS papers (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    topic TEXT NOT NULL,
    abstract TEXT NOT NULL,
    keywords TEXT NOT NULL DEFAULT '[]',
    introduction TEXT NOT NULL,
    methodology TEXT NOT NULL,
    results TEXT NOT NULL,
    discussion TEXT NOT NULL,
    conclusion TEXT NOT NULL,
    references_ TEXT NOT NULL DEFAULT '[]',
    word_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_papers_user ON papers(user_id, created_at);

CREATE TABLE IF NOT EXISTS llm_usage (
    id TEXT PRIMARY KEY,
    model TEXT NOT NULL,
    task_type TEXT NOT NULL,
    prompt_tokens INTEGER DEFAULT 0,
    completion_tokens INTEGER DEFAULT 0,
    total_tokens INTEGER DEFAULT 0,
    cost_usd REAL DEFAULT 0,
    latency_ms INTEGER DEFAULT 0,
    success INTEGER DEFAULT 1,
    created_at TEXT
);
"""
