"""Decide what happens to a work item before and after the upscaler runs."""

from pathlib import Path

from midjourney_upscaler.upscale.models import Failed, Outcome, Skipped, Success, WorkItem
from midjourney_upscaler.upscale.upscaler_config import (
    UPSCALER_OUTPUT_EXTENSION,
    VALID_UPSCALER_FACTORS,
)


def get_output_file(source_file: Path, model: str, factor: str) -> Path:
    """Return "<dir>/<stem>.<model>-<factor>.webp".

    Only the last extension of the source is stripped, whatever its case.
    """
    return source_file.with_name(f"{source_file.stem}.{model}-{factor}{UPSCALER_OUTPUT_EXTENSION}")


def is_upscaler_output(file: Path, model: str) -> bool:
    return any(
        file.name.lower().endswith(f".{model}-{factor}{UPSCALER_OUTPUT_EXTENSION}".lower())
        for factor in VALID_UPSCALER_FACTORS
    )


def get_size_kb(file: Path) -> int:
    return file.stat().st_size // 1024


def is_already_upscaled(item: WorkItem) -> bool:
    """Guess whether an earlier run already produced the output.

    This is a size heuristic, not a content check: an existing output that is
    strictly bigger (in whole kB) than its source counts as done.
    """
    if not item.output_path.is_file():
        return False

    return get_size_kb(item.output_path) > get_size_kb(item.source_path)


def get_skipped(item: WorkItem) -> Skipped:
    return Skipped(
        source_path=item.source_path,
        output_path=item.output_path,
        size_kb=get_size_kb(item.output_path),
    )


def classify_exit_status(item: WorkItem, return_code: int) -> Outcome:
    """A zero exit that leaves no output file is still Failed: there is nothing to measure."""
    if return_code != 0 or not item.output_path.is_file():
        return Failed(source_path=item.source_path)

    return Success(
        source_path=item.source_path,
        output_path=item.output_path,
        size_kb=get_size_kb(item.output_path),
    )
