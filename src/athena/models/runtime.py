"""In-memory runtime records owned by the sandbox supervisor."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class RunningProjectEntry:
    """A live dev-server process. Never persisted."""

    project_id: str
    port: int
    start_time: str
    pid: int

    def to_payload(self) -> dict[str, str | int]:
        return {
            "projectId": self.project_id,
            "port": self.port,
            "startTime": self.start_time,
            "pid": self.pid,
        }
