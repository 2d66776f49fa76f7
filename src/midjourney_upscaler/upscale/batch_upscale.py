import os
import signal
import sys
from pathlib import Path
from types import FrameType
from typing import NoReturn

import psutil
import typer
from loguru import logger
from loguru_config import LoguruConfig
from rich.console import Console

import midjourney_upscaler.log_setup as _log_setup
from midjourney_upscaler.upscale.cli_options import (
    DEFAULT_EXTENSIONS_STR,
    ArchiveOpt,
    CommandOpt,
    DirectoryArg,
    ExtensionsOpt,
    FactorOpt,
    LockFileOpt,
    LogLevelArg,
    MaxWorkersOpt,
    ModelOpt,
    UpscalerPathOpt,
)
from midjourney_upscaler.upscale.discovery import get_work_items
from midjourney_upscaler.upscale.errors import UpscalerError, UpscalerNotFoundError
from midjourney_upscaler.upscale.installer import install_upscaler
from midjourney_upscaler.upscale.outcome_log import OutcomeLog
from midjourney_upscaler.upscale.process_lock import DEFAULT_LOCK_FILE, remove_lock_held_by
from midjourney_upscaler.upscale.report import print_report
from midjourney_upscaler.upscale.runner import UpscaleJobRunner
from midjourney_upscaler.upscale.upscaler_config import (
    DEFAULT_UPSCALER_COMMAND,
    DEFAULT_UPSCALER_FACTOR,
    DEFAULT_UPSCALER_MODEL,
    UpscalerConfig,
    get_default_upscaler_folder,
    get_platform,
    get_release_url,
    parse_extensions,
)

APP_LOGGING_NAME = "mjup"

_RESOURCES = Path(__file__).parent.parent / "resources"

INTERRUPTED_EXIT_CODE = 130


def get_upscaler_config(
    platform_name: str,
    folder: Path | None,
    command: str,
    model: str,
    factor: str,
    archive: Path | None,
) -> UpscalerConfig:
    if folder is None:
        folder = get_default_upscaler_folder(platform_name)

    config = UpscalerConfig(folder=folder, command=command, model=model, factor=factor)

    if not config.folder.is_dir():
        if archive is None:
            msg = (
                f'Upscaler folder not found: "{config.folder}".'
                f' Download "{get_release_url(platform_name)}" and pass it with "--archive".'
            )
            raise UpscalerNotFoundError(msg)
        install_upscaler(archive, config.folder, config.command)

    if not config.is_installed():
        msg = f'Upscaler command is missing or not executable: "{config.get_executable()}".'
        raise UpscalerNotFoundError(msg)

    return config


def upscale_directory(
    config: UpscalerConfig,
    root_dir: Path,
    extensions: tuple[str, ...],
    lock_file: Path,
    max_workers: int | None,
) -> OutcomeLog:
    work_items = get_work_items(root_dir, config.model, config.factor, extensions)

    runner = UpscaleJobRunner(config, lock_file)

    return runner.run(work_items, max_workers)


def exit_with_error(msg: str, exit_code: int = 1) -> NoReturn:
    Console(stderr=True, soft_wrap=True).print(
        f"Error: {msg}", style="red", markup=False, highlight=False
    )
    sys.exit(exit_code)


def cleanup(lock_file: Path) -> None:
    pids = {os.getpid()}
    try:
        pids.update(p.pid for p in psutil.Process().children(recursive=True))
    except psutil.Error:
        logger.warning("Could not list worker processes.")

    remove_lock_held_by(lock_file, pids)


def _raise_interrupt(_signum: int, _frame: FrameType | None) -> None:
    raise KeyboardInterrupt


app = typer.Typer()


@app.command(
    help="Upscale all images in a directory (and its subdirectories).", no_args_is_help=True
)
def main(
    directory: DirectoryArg = None,
    upscaler_path: UpscalerPathOpt = None,
    command: CommandOpt = DEFAULT_UPSCALER_COMMAND,
    factor: FactorOpt = DEFAULT_UPSCALER_FACTOR,
    model: ModelOpt = DEFAULT_UPSCALER_MODEL,
    extensions_str: ExtensionsOpt = DEFAULT_EXTENSIONS_STR,
    archive: ArchiveOpt = None,
    lock_file: LockFileOpt = None,
    max_workers: MaxWorkersOpt = None,
    log_level_str: LogLevelArg = "INFO",
) -> None:
    _log_setup.log_level = log_level_str
    _log_setup.log_filename = "mj-upscale.log"
    _log_setup.APP_LOGGING_NAME = APP_LOGGING_NAME
    LoguruConfig.load(_RESOURCES / "log-config.yaml")

    if lock_file is None:
        lock_file = DEFAULT_LOCK_FILE

    previous_handler = signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        platform_name = get_platform()

        if directory is None:
            msg = "Invalid PATH provided."
            raise typer.BadParameter(msg)

        extensions = parse_extensions(extensions_str)
        config = get_upscaler_config(platform_name, upscaler_path, command, model, factor, archive)

        outcome_log = upscale_directory(config, directory, extensions, lock_file, max_workers)
    except KeyboardInterrupt:
        cleanup(lock_file)
        exit_with_error("Interrupted.", INTERRUPTED_EXIT_CODE)
    except (UpscalerError, NotADirectoryError, FileNotFoundError, ValueError) as e:
        logger.debug(f"Fatal error: {e}")
        exit_with_error(str(e))
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    print_report(outcome_log)


if __name__ == "__main__":
    app()
