"""Session persistence.

The loop hands its finished history, state and tool-output metadata to a
``SessionStore`` and gets them back on resume. Two stores are provided: an
in-memory store for tests and single-process use, and a JSON file store for
recovery across restarts.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

from agent_core.llm_client.types import Message
from agent_core.orchestrator.types import (
    LoopResult,
    ResumeSnapshot,
    SessionState,
    SessionStatus,
    ToolOutputMeta,
)


class SessionRecord(BaseModel):
    """A persisted session.

    Attributes:
        session_id: Unique identifier of the session.
        messages: Full message history at the end of the last run.
        state: Accounting and status at the end of the last run.
        tool_output_meta: Which history entries hold tool output, and when.
        output: Final output of the last run.
        reflection: Reflection summary of the last run.
        metadata: Caller-defined extras (channel, user, ...).
        created_at: UTC timestamp when the session was first saved.
        updated_at: UTC timestamp of the last save.
    """

    session_id: str
    messages: list[Message] = Field(default_factory=list)
    state: SessionState = Field(default_factory=SessionState)
    tool_output_meta: list[ToolOutputMeta] = Field(default_factory=list)
    output: str = ""
    reflection: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_result(cls, result: LoopResult, metadata: dict[str, Any] | None = None) -> "SessionRecord":
        return cls(
            session_id=result.session_id,
            messages=list(result.messages),
            state=result.state,
            tool_output_meta=list(result.tool_output_meta),
            output=result.output,
            reflection=dict(result.reflection),
            metadata=metadata or {},
        )

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    def to_resume(self) -> ResumeSnapshot:
        """Snapshot for ``LoopController.run(resume=...)``."""
        return ResumeSnapshot(
            messages=list(self.messages),
            state=SessionState.from_snapshot(self.state),
            tool_output_meta=list(self.tool_output_meta),
        )


class SessionStore(Protocol):
    """Durable storage for sessions."""

    def save(self, record: SessionRecord) -> None: ...

    def load(self, session_id: str) -> SessionRecord | None: ...

    def delete(self, session_id: str) -> bool: ...

    def list_sessions(self) -> list[SessionRecord]: ...


class InMemorySessionStore:
    """Keeps sessions in a dict for the lifetime of the process."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}

    def save(self, record: SessionRecord) -> None:
        """Insert or replace a session, keeping its original ``created_at``."""
        existing = self._sessions.get(record.session_id)
        updates: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if existing is not None:
            updates["created_at"] = existing.created_at
        self._sessions[record.session_id] = record.model_copy(update=updates)

    def load(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def list_sessions(self) -> list[SessionRecord]:
        """List all sessions, most recently updated first."""
        return sorted(self._sessions.values(), key=lambda r: r.updated_at, reverse=True)


class JsonFileSessionStore:
    """Stores each session as ``<directory>/<session_id>.json``."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, record: SessionRecord) -> None:
        existing = self.load(record.session_id)
        updates: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if existing is not None:
            updates["created_at"] = existing.created_at
        record = record.model_copy(update=updates)
        path = self._path(record.session_id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def load(self, session_id: str) -> SessionRecord | None:
        """Load a session.

        Raises:
            pydantic.ValidationError: If the stored file does not hold a valid session.
        """
        path = self._path(session_id)
        if not path.exists():
            return None
        return SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_sessions(self) -> list[SessionRecord]:
        records = [
            SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))
            for path in self.directory.glob("*.json")
        ]
        return sorted(records, key=lambda r: r.updated_at, reverse=True)
