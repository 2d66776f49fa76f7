import concurrent.futures
import time
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from midjourney_upscaler.upscale.classify import (
    classify_exit_status,
    get_skipped,
    is_already_upscaled,
)
from midjourney_upscaler.upscale.models import Failed, Outcome, WorkItem
from midjourney_upscaler.upscale.outcome_log import OutcomeLog
from midjourney_upscaler.upscale.process_lock import (
    DEFAULT_LOCK_FILE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_STALE_AFTER,
    ProcessLock,
)
from midjourney_upscaler.upscale.upscaler_config import UpscalerConfig
from midjourney_upscaler.upscale.upscaler_exe import run_upscaler


class UpscaleJobRunner:
    """Upscales work items, at most one upscaler invocation at a time.

    Items may be handed to several worker processes, but every invocation of
    the upscaler happens while holding the 'ProcessLock'. Items that are
    already upscaled are skipped without taking the lock.
    """

    def __init__(
        self,
        config: UpscalerConfig,
        lock_file: Path = DEFAULT_LOCK_FILE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        stale_after: float | None = DEFAULT_STALE_AFTER,
    ) -> None:
        self.config = config
        self.lock_file = lock_file
        self.poll_interval = poll_interval
        self.stale_after = stale_after

    def get_lock(self) -> ProcessLock:
        return ProcessLock(self.lock_file, self.poll_interval, self.stale_after)

    def process_file(self, item: WorkItem) -> Outcome:
        short_name = item.source_path.name

        if is_already_upscaled(item):
            logger.info(f'"{short_name}" is already upscaled - skipping.')
            return get_skipped(item)

        with self.get_lock():
            logger.info(f'Upscaling "{item.source_path}".')
            start = time.time()
            return_code = run_upscaler(self.config, item.source_path, item.output_path)

        outcome = classify_exit_status(item, return_code)
        logger.debug(
            f'Upscaled "{short_name}" in {int(time.time() - start)}s: {outcome.kind.name}.'
        )

        return outcome

    def run(self, work_items: Iterable[WorkItem], max_workers: int | None = None) -> OutcomeLog:
        start = time.time()
        outcome_log = OutcomeLog()

        executor = concurrent.futures.ProcessPoolExecutor(max_workers)
        try:
            futures = {executor.submit(self.process_file, item): item for item in work_items}
            for future in concurrent.futures.as_completed(futures):
                outcome_log.append(get_future_outcome(future, futures[future]))
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown()

        logger.info(
            f"Time taken to upscale all {len(outcome_log)} files: {int(time.time() - start)}s."
        )

        return outcome_log


def get_future_outcome(future: concurrent.futures.Future, item: WorkItem) -> Outcome:
    # noinspection PyBroadException
    try:
        return future.result()
    except Exception:  # noqa: BLE001
        logger.exception(f'Error processing "{item.source_path}": ')
        return Failed(source_path=item.source_path)
