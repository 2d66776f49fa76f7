from collections.abc import Sequence
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from midjourney_upscaler.upscale.models import AggregatedRow, Failed, Skipped, Success
from midjourney_upscaler.upscale.outcome_log import OutcomeLog

UNKNOWN_GROUP_KEY = "unknown"

HEADER_STYLE = "yellow"
ROW_STYLE = "cyan"

SUCCESS_TITLE = "Successful upscales"
FAILED_TITLE = "Failed upscales"
SKIPPED_TITLE = "Skipped upscales"

SUCCESS_COLOR = "green"
FAILED_COLOR = "red"
SKIPPED_COLOR = "yellow"

SIZED_COLUMNS = ("Subject", "Count", "Size MB")
COUNT_COLUMNS = ("Topic", "Count")


def get_group_key(file: Path) -> str:
    # Filenames look like "0001_portrait_seed42.png": the subject is the second token.
    parts = file.name.split("_")
    if len(parts) < 2 or not parts[1]:  # noqa: PLR2004
        return UNKNOWN_GROUP_KEY
    return parts[1].lower()


def aggregate_sized(outcomes: Sequence[Success | Skipped]) -> list[AggregatedRow]:
    counts: dict[str, int] = {}
    sizes_kb: dict[str, int] = {}

    for outcome in outcomes:
        key = get_group_key(outcome.source_path)
        counts[key] = counts.get(key, 0) + 1
        sizes_kb[key] = sizes_kb.get(key, 0) + outcome.size_kb

    return [AggregatedRow(key, counts[key], sizes_kb[key] / 1024) for key in counts]


def aggregate_counts(outcomes: Sequence[Failed]) -> list[AggregatedRow]:
    counts: dict[str, int] = {}

    for outcome in outcomes:
        key = get_group_key(outcome.source_path)
        counts[key] = counts.get(key, 0) + 1

    return [AggregatedRow(key, count) for key, count in counts.items()]


def make_outcome_table(rows: list[AggregatedRow], with_size: bool) -> Table:
    table = Table(box=box.SQUARE, header_style=HEADER_STYLE)

    columns = SIZED_COLUMNS if with_size else COUNT_COLUMNS
    table.add_column(columns[0])
    for column in columns[1:]:
        table.add_column(column, justify="right")

    for row in rows:
        cells = [row.group_key, str(row.count)]
        if with_size:
            cells.append(row.get_size_mb_str())
        table.add_row(*cells, style=ROW_STYLE)

    return table


def get_report_tables(outcome_log: OutcomeLog) -> list[tuple[str, str, Table]]:
    """Return (title, title color, table) for each kind of outcome that has entries."""
    tables = []

    if outcome_log.success:
        rows = aggregate_sized(outcome_log.success)
        tables.append((SUCCESS_TITLE, SUCCESS_COLOR, make_outcome_table(rows, with_size=True)))
    if outcome_log.failed:
        rows = aggregate_counts(outcome_log.failed)
        tables.append((FAILED_TITLE, FAILED_COLOR, make_outcome_table(rows, with_size=False)))
    if outcome_log.skipped:
        rows = aggregate_sized(outcome_log.skipped)
        tables.append((SKIPPED_TITLE, SKIPPED_COLOR, make_outcome_table(rows, with_size=True)))

    return tables


def print_report(outcome_log: OutcomeLog, console: Console | None = None) -> None:
    if console is None:
        console = Console()

    for title, color, table in get_report_tables(outcome_log):
        console.print()
        console.print(f"{title}:", style=color)
        console.print(table)
