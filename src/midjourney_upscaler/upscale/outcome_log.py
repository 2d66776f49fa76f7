import threading

from midjourney_upscaler.upscale.models import Failed, Outcome, Skipped, Success


class OutcomeLog:
    """Append-only record of outcomes, safe to append to from several threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._success: list[Success] = []
        self._failed: list[Failed] = []
        self._skipped: list[Skipped] = []

    def append(self, outcome: Outcome) -> None:
        with self._lock:
            if isinstance(outcome, Success):
                self._success.append(outcome)
            elif isinstance(outcome, Failed):
                self._failed.append(outcome)
            elif isinstance(outcome, Skipped):
                self._skipped.append(outcome)
            else:
                msg = f"Not an outcome: {outcome!r}."
                raise TypeError(msg)

    @property
    def success(self) -> tuple[Success, ...]:
        with self._lock:
            return tuple(self._success)

    @property
    def failed(self) -> tuple[Failed, ...]:
        with self._lock:
            return tuple(self._failed)

    @property
    def skipped(self) -> tuple[Skipped, ...]:
        with self._lock:
            return tuple(self._skipped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._success) + len(self._failed) + len(self._skipped)
