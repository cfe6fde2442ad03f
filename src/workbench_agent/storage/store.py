# src/workbench_agent/storage/store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.models import (
    Agent,
    Conversation,
    ConversationStatus,
    Message,
    MessageType,
    ModelProvider,
    Step,
    StepStatus,
    Task,
)

logger = logging.getLogger(__name__)

# Seeded on first start; API keys are filled in later by the user.
DEFAULT_PROVIDERS: tuple[tuple[str, str, str], ...] = (
    ("deepseek", "DeepSeek", "https://api.deepseek.com"),
    ("tongyi", "Tongyi Qianwen", "https://dashscope.aliyuncs.com/compatible-mode/v1"),
    ("volcengine", "Volcengine Ark", "https://ark.cn-beijing.volces.com/api/v3"),
)


class WorkbenchStore:
    """
    SQLite store for providers, agents, tasks and agent conversations.

    Implements the ConversationRepo port consumed by the execution loop.

    Thread-safety:
    - each method opens its own SQLite connection
    - turns for one conversation never overlap (see TurnDispatcher), so
      plain per-row writes are enough
    """

    def __init__(self, db_path: str | Path = "workbench.sqlite3", *, seed_providers: bool = True) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        if seed_providers:
            self._seed_default_providers()
        logger.info("WorkbenchStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.executescript(
                """
                CREATE TABLE IF NOT EXISTS model_providers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    label TEXT NOT NULL,
                    api_key TEXT NOT NULL DEFAULT '',
                    base_url TEXT NOT NULL DEFAULT '',
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS agents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    prompt TEXT NOT NULL DEFAULT '',
                    provider_id INTEGER REFERENCES model_providers(id) ON DELETE SET NULL,
                    model TEXT NOT NULL DEFAULT '',
                    tools TEXT NOT NULL DEFAULT '[]',
                    working_dir TEXT NOT NULL DEFAULT '',
                    max_steps INTEGER NOT NULL DEFAULT 0,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    project TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    date TEXT,
                    deadline TEXT,
                    created_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    agent_id INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id INTEGER NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    message_type TEXT NOT NULL DEFAULT 'text',
                    metadata TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS steps (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id INTEGER NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
                    step_num INTEGER NOT NULL,
                    thought TEXT NOT NULL DEFAULT '',
                    action TEXT NOT NULL DEFAULT '',
                    action_input TEXT NOT NULL DEFAULT '',
                    observation TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    error TEXT NOT NULL DEFAULT '',
                    created_at REAL NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_conversations_task ON conversations(task_id);
                CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id, id);
                CREATE UNIQUE INDEX IF NOT EXISTS idx_steps_conversation_num ON steps(conversation_id, step_num);
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _seed_default_providers(self) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            conn.executemany(
                "INSERT OR IGNORE INTO model_providers(name, label, base_url, created_at) VALUES (?, ?, ?, ?)",
                [(name, label, base_url, now) for name, label, base_url in DEFAULT_PROVIDERS],
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _meta_to_str(meta: dict[str, Any] | None) -> str:
        if not meta:
            return "{}"
        try:
            return json.dumps(meta, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode metadata; storing {}.")
            return "{}"

    @staticmethod
    def _str_to_meta(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            val = json.loads(s)
        except ValueError:
            return {}
        return val if isinstance(val, dict) else {}

    @staticmethod
    def _str_to_tools(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            return []
        if not isinstance(val, list):
            return []
        return [str(x) for x in val if isinstance(x, str) and x.strip()]

    @staticmethod
    def _lastrowid(cur: sqlite3.Cursor, what: str) -> int:
        rowid = cur.lastrowid
        if rowid is None:
            raise RuntimeError(f"SQLite did not return lastrowid for {what} insert")
        return int(rowid)

    @staticmethod
    def _row_to_provider(row: sqlite3.Row) -> ModelProvider:
        return ModelProvider(
            id=int(row["id"]),
            name=str(row["name"]),
            label=str(row["label"]),
            base_url=str(row["base_url"] or ""),
            api_key=str(row["api_key"] or ""),
            enabled=bool(row["enabled"]),
        )

    def _row_to_agent(self, row: sqlite3.Row) -> Agent:
        return Agent(
            id=int(row["id"]),
            name=str(row["name"]),
            description=str(row["description"] or ""),
            prompt=str(row["prompt"] or ""),
            provider_id=int(row["provider_id"]) if row["provider_id"] is not None else None,
            model=str(row["model"] or ""),
            tools=self._str_to_tools(row["tools"]),
            working_dir=str(row["working_dir"] or ""),
            max_steps=int(row["max_steps"] or 0),
            enabled=bool(row["enabled"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            name=str(row["name"]),
            description=str(row["description"] or ""),
            project=str(row["project"] or ""),
            status=str(row["status"] or "pending"),
            date=row["date"],
            deadline=row["deadline"],
        )

    @staticmethod
    def _row_to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            agent_id=int(row["agent_id"]),
            status=ConversationStatus.from_db(row["status"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            agent_name=str(row["agent_name"] or ""),
        )

    def _row_to_message(self, row: sqlite3.Row) -> Message:
        return Message(
            id=int(row["id"]),
            conversation_id=int(row["conversation_id"]),
            role=str(row["role"]),
            content=str(row["content"] or ""),
            type=MessageType.from_db(row["message_type"]),
            metadata=self._str_to_meta(row["metadata"]),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _row_to_step(row: sqlite3.Row) -> Step:
        return Step(
            id=int(row["id"]),
            conversation_id=int(row["conversation_id"]),
            step_num=int(row["step_num"]),
            thought=str(row["thought"] or ""),
            action=str(row["action"] or ""),
            action_input=str(row["action_input"] or ""),
            observation=str(row["observation"] or ""),
            status=StepStatus.from_db(row["status"]),
            error=str(row["error"] or ""),
            created_at=float(row["created_at"] or 0.0),
        )

    # ---- providers ----

    def add_provider(self, *, name: str, label: str, base_url: str, api_key: str = "", enabled: bool = True) -> int:
        if not name or not name.strip():
            raise ValueError("name is required")
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO model_providers(name, label, api_key, base_url, enabled, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (name.strip(), (label or name).strip(), api_key, base_url.strip(), int(enabled), time.time()),
            )
            conn.commit()
            return self._lastrowid(cur, "provider")
        finally:
            conn.close()

    def set_provider_api_key(self, provider_id: int, api_key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE model_providers SET api_key = ? WHERE id = ?", (api_key.strip(), provider_id))
            conn.commit()
        finally:
            conn.close()

    def get_provider(self, provider_id: int) -> ModelProvider | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM model_providers WHERE id = ?", (provider_id,)).fetchone()
            return self._row_to_provider(row) if row is not None else None
        finally:
            conn.close()

    def list_providers(self) -> list[ModelProvider]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM model_providers ORDER BY id ASC").fetchall()
            return [self._row_to_provider(r) for r in rows]
        finally:
            conn.close()

    # ---- agents ----

    def add_agent(
        self,
        *,
        name: str,
        provider_id: int | None = None,
        model: str = "",
        prompt: str = "",
        tools: list[str] | None = None,
        working_dir: str = "",
        max_steps: int = 0,
        description: str = "",
        enabled: bool = True,
    ) -> int:
        if not name or not name.strip():
            raise ValueError("name is required")
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO agents(
                    name, description, prompt, provider_id, model,
                    tools, working_dir, max_steps, enabled, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    name.strip(),
                    description,
                    prompt,
                    provider_id,
                    model.strip(),
                    json.dumps(list(tools or []), ensure_ascii=False),
                    working_dir,
                    max(0, int(max_steps)),
                    int(enabled),
                    time.time(),
                ),
            )
            conn.commit()
            return self._lastrowid(cur, "agent")
        finally:
            conn.close()

    def get_agent(self, agent_id: int) -> Agent | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
            return self._row_to_agent(row) if row is not None else None
        finally:
            conn.close()

    def list_agents(self) -> list[Agent]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM agents ORDER BY id ASC").fetchall()
            return [self._row_to_agent(r) for r in rows]
        finally:
            conn.close()

    # ---- tasks ----

    def add_task(
        self,
        *,
        name: str,
        description: str = "",
        project: str = "",
        status: str = "pending",
        date: str | None = None,
        deadline: str | None = None,
    ) -> int:
        if not name or not name.strip():
            raise ValueError("name is required")
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO tasks(name, description, project, status, date, deadline, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (name.strip(), description.strip(), project.strip(), status, date, deadline, time.time()),
            )
            conn.commit()
            return self._lastrowid(cur, "task")
        finally:
            conn.close()

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row is not None else None
        finally:
            conn.close()

    def list_tasks(self, *, limit: int = 50) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY id DESC LIMIT ?", (int(limit),)).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    # ---- conversations ----

    _CONVERSATION_SELECT = """
        SELECT c.id, c.task_id, c.agent_id, COALESCE(a.name, '') AS agent_name,
               c.status, c.created_at, c.updated_at
        FROM conversations c
        LEFT JOIN agents a ON c.agent_id = a.id
    """

    def create_conversation(
        self,
        task_id: int,
        agent_id: int,
        status: ConversationStatus = ConversationStatus.ACTIVE,
    ) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO conversations(task_id, agent_id, status, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (task_id, agent_id, status.value, now, now),
            )
            conn.commit()
            conversation_id = self._lastrowid(cur, "conversation")
            logger.debug("Conversation created id=%s task=%s agent=%s", conversation_id, task_id, agent_id)
            return conversation_id
        finally:
            conn.close()

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        conn = self._get_conn()
        try:
            row = conn.execute(self._CONVERSATION_SELECT + " WHERE c.id = ?", (conversation_id,)).fetchone()
            return self._row_to_conversation(row) if row is not None else None
        finally:
            conn.close()

    def list_task_conversations(self, task_id: int) -> list[Conversation]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                self._CONVERSATION_SELECT + " WHERE c.task_id = ? ORDER BY c.created_at DESC, c.id DESC",
                (task_id,),
            ).fetchall()
            return [self._row_to_conversation(r) for r in rows]
        finally:
            conn.close()

    def update_conversation_status(self, conversation_id: int, status: ConversationStatus) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE conversations SET status = ?, updated_at = ? WHERE id = ?",
                (ConversationStatus(status).value, time.time(), conversation_id),
            )
            conn.commit()
            logger.debug("Conversation %s -> %s", conversation_id, status)
        finally:
            conn.close()

    @staticmethod
    def _touch_conversation(conn: sqlite3.Connection, conversation_id: int, now: float) -> None:
        conn.execute("UPDATE conversations SET updated_at = ? WHERE id = ?", (now, conversation_id))

    # ---- messages ----

    def append_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        msg_type: str = "text",
        metadata: dict[str, Any] | None = None,
    ) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO messages(conversation_id, role, content, message_type, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (conversation_id, str(role), content or "", str(msg_type), self._meta_to_str(metadata), now),
            )
            self._touch_conversation(conn, conversation_id, now)
            conn.commit()
            return self._lastrowid(cur, "message")
        finally:
            conn.close()

    def list_messages(self, conversation_id: int) -> list[Message]:
        """Messages in insertion order (defines both the visible transcript and the model context)."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM messages WHERE conversation_id = ? ORDER BY id ASC",
                (conversation_id,),
            ).fetchall()
            return [self._row_to_message(r) for r in rows]
        finally:
            conn.close()

    # ---- steps ----

    def append_step(
        self,
        conversation_id: int,
        step_num: int,
        thought: str,
        action: str,
        action_input: str,
    ) -> int:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO steps(
                    conversation_id, step_num, thought, action, action_input,
                    observation, status, error, created_at
                )
                VALUES (?, ?, ?, ?, ?, '', ?, '', ?)
                """,
                (conversation_id, int(step_num), thought or "", action, action_input or "", StepStatus.RUNNING.value, now),
            )
            self._touch_conversation(conn, conversation_id, now)
            conn.commit()
            return self._lastrowid(cur, "step")
        finally:
            conn.close()

    def update_step(self, step_id: int, status: StepStatus, observation: str, error: str = "") -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE steps SET status = ?, observation = ?, error = ? WHERE id = ?",
                (StepStatus(status).value, observation or "", error or "", step_id),
            )
            conn.commit()
        finally:
            conn.close()

    def list_steps(self, conversation_id: int) -> list[Step]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM steps WHERE conversation_id = ? ORDER BY step_num ASC",
                (conversation_id,),
            ).fetchall()
            return [self._row_to_step(r) for r in rows]
        finally:
            conn.close()

    def last_step_num(self, conversation_id: int) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COALESCE(MAX(step_num), 0) FROM steps WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
            return int(n)
        finally:
            conn.close()
