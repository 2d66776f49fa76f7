from pathlib import Path
from typing import Annotated

import typer

from midjourney_upscaler.upscale.upscaler_config import (
    ENV_UPSCALER_COMMAND,
    ENV_UPSCALER_EXTENSIONS,
    ENV_UPSCALER_FACTOR,
    ENV_UPSCALER_FOLDER,
    ENV_UPSCALER_LOCK_FILE,
    ENV_UPSCALER_MODEL,
    IMAGE_EXTENSIONS,
    normalize_factor,
)


def _factor_callback(value: str) -> str:
    try:
        return normalize_factor(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


DEFAULT_EXTENSIONS_STR = ",".join(IMAGE_EXTENSIONS)

DirectoryArg = Annotated[
    Path | None,
    typer.Argument(help="Directory to scan (recursively) for images.", show_default=False),
]
UpscalerPathOpt = Annotated[
    Path | None,
    typer.Option(
        "--upscaler-path",
        "-u",
        envvar=ENV_UPSCALER_FOLDER,
        help="Folder of the upscaler binary. (default: scripts/realesrgan-ncnn-vulkan-*)",
        show_default=False,
    ),
]
CommandOpt = Annotated[
    str,
    typer.Option(
        "--command",
        "-c",
        envvar=ENV_UPSCALER_COMMAND,
        help="The upscaler command.",
    ),
]
FactorOpt = Annotated[
    str,
    typer.Option(
        "--factor",
        "-f",
        envvar=ENV_UPSCALER_FACTOR,
        callback=_factor_callback,
        help="The upscale factor, 4k or 8k.",
    ),
]
ModelOpt = Annotated[
    str,
    typer.Option(
        "--model",
        "-m",
        envvar=ENV_UPSCALER_MODEL,
        help="The upscaler model.",
    ),
]
ExtensionsOpt = Annotated[
    str,
    typer.Option(
        "--extensions",
        envvar=ENV_UPSCALER_EXTENSIONS,
        help="Comma separated image extensions.",
    ),
]
ArchiveOpt = Annotated[
    Path | None,
    typer.Option(
        "--archive",
        help="Downloaded upscaler release zip to install if the upscaler folder is missing.",
    ),
]
LockFileOpt = Annotated[
    Path | None,
    typer.Option(
        "--lock-file",
        envvar=ENV_UPSCALER_LOCK_FILE,
        help="Lock file serializing upscaler runs.",
        show_default=False,
    ),
]
MaxWorkersOpt = Annotated[
    int | None,
    typer.Option("--max-workers", "-w", min=1, help="Number of worker processes."),
]
LogLevelArg = Annotated[str, typer.Option("--log-level", help="Log level.")]
