import subprocess
from pathlib import Path

from loguru import logger

from midjourney_upscaler.upscale.upscaler_config import UPSCALER_OUTPUT_FORMAT, UpscalerConfig


def get_upscaler_args(config: UpscalerConfig, in_file: Path, out_file: Path) -> list[str]:
    return [
        str(config.get_executable()),
        "-n",
        config.model,
        "-v",
        "-x",
        "-f",
        UPSCALER_OUTPUT_FORMAT,
        "-i",
        str(in_file),
        "-o",
        str(out_file),
    ]


def run_upscaler(config: UpscalerConfig, in_file: Path, out_file: Path) -> int:
    run_args = get_upscaler_args(config, in_file, out_file)

    logger.debug(f"Running upscaler: {' '.join(run_args)}.")

    # The upscaler loads its models relative to its own folder. Passing 'cwd'
    # leaves this process's working directory untouched.
    try:
        process = subprocess.run(  # noqa: S603
            run_args,
            cwd=config.folder,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        logger.error(f'Could not run upscaler "{run_args[0]}": {e}.')
        return -1

    if process.returncode != 0:
        logger.debug(f'Upscaler failed for "{in_file}": exit code = {process.returncode}.')

    return process.returncode
