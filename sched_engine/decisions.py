from __future__ import annotations

from typing import Iterable, List, Optional

from .models import DecisionLog, Number


class DecisionRecorder:
    """
    Collects the plain-text step log and the structured decision log of a run.

    Recording is a no-op when disabled, so the engine can call it
    unconditionally.
    """

    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled
        self._lines: List[str] = []
        self._decisions: List[DecisionLog] = []

    def note(self, time: Number, message: str) -> None:
        if self.enabled:
            self._lines.append(f"Time {time}: {message}")

    def decide(self, time: Number, core_id: int, message: str, reason: str, candidates: Iterable[str]) -> None:
        if self.enabled:
            self._decisions.append(
                DecisionLog(time=time, core_id=core_id, message=message, reason=reason, queue_state=list(candidates))
            )

    @property
    def lines(self) -> Optional[List[str]]:
        return list(self._lines) if self.enabled else None

    @property
    def decisions(self) -> Optional[List[DecisionLog]]:
        return list(self._decisions) if self.enabled else None
