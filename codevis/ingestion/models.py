from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from codevis.errors import ErrorInfo


class JobEvent(BaseModel):
    """ingestion job（validate -> persist -> clone）的阶段事件。"""

    phase: Literal["Cloning", "Done", "Failed"]
    repo_id: str
    error: ErrorInfo | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase != "Cloning"
