from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path


class OutcomeKind(Enum):
    SUCCESS = auto()
    FAILED = auto()
    SKIPPED = auto()


@dataclass(frozen=True)
class WorkItem:
    source_path: Path
    output_path: Path


@dataclass(frozen=True)
class Success:
    source_path: Path
    output_path: Path
    size_kb: int
    kind: OutcomeKind = OutcomeKind.SUCCESS


@dataclass(frozen=True)
class Failed:
    source_path: Path
    kind: OutcomeKind = OutcomeKind.FAILED


@dataclass(frozen=True)
class Skipped:
    source_path: Path
    output_path: Path
    size_kb: int
    kind: OutcomeKind = OutcomeKind.SKIPPED


Outcome = Success | Failed | Skipped


@dataclass(frozen=True)
class AggregatedRow:
    group_key: str
    count: int
    total_size_mb: float | None = None

    def get_size_mb_str(self) -> str:
        if self.total_size_mb is None:
            return ""
        return f"{self.total_size_mb:.2f}"
