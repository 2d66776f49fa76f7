import os
import platform
from dataclasses import dataclass
from pathlib import Path

from midjourney_upscaler.upscale.errors import UnsupportedPlatformError

UPSCALER_VERSION = "20220424"
UPSCALER_RELEASE_URL = "https://github.com/xinntao/Real-ESRGAN/releases/download/v0.2.5.0"

DEFAULT_UPSCALER_COMMAND = "realesrgan-ncnn-vulkan"
DEFAULT_UPSCALER_MODEL = "realesrgan-x4plus"
DEFAULT_UPSCALER_FACTOR = "4k"
VALID_UPSCALER_FACTORS = ("4k", "8k")

UPSCALER_OUTPUT_FORMAT = "webp"
UPSCALER_OUTPUT_EXTENSION = ".webp"

IMAGE_EXTENSIONS = (".png", ".jpg")

ENV_UPSCALER_FOLDER = "MJU_UPSCALER_FOLDER"
ENV_UPSCALER_COMMAND = "MJU_UPSCALER_COMMAND"
ENV_UPSCALER_FACTOR = "MJU_UPSCALER_FACTOR"
ENV_UPSCALER_MODEL = "MJU_UPSCALER_MODEL"
ENV_UPSCALER_EXTENSIONS = "MJU_UPSCALER_EXTENSIONS"
ENV_UPSCALER_LOCK_FILE = "MJU_UPSCALER_LOCK_FILE"

# The Linux release archive is published under the "ubuntu" name.
_RELEASE_ASSET_PLATFORMS = {
    "linux": "ubuntu",
    "macos": "macos",
    "windows": "windows",
}


def get_platform(system: str = "") -> str:
    system = system or platform.system()

    if system.startswith("Linux"):
        return "linux"
    if system.startswith("Darwin"):
        return "macos"
    if system.startswith(("Windows", "CYGWIN", "MINGW", "MSYS")):
        return "windows"

    msg = f'Unsupported platform "{system}".'
    raise UnsupportedPlatformError(msg)


def get_default_upscaler_folder(platform_name: str) -> Path:
    return Path("scripts") / f"realesrgan-ncnn-vulkan-{UPSCALER_VERSION}-{platform_name}"


def get_release_archive_name(platform_name: str) -> str:
    asset = _RELEASE_ASSET_PLATFORMS[platform_name]
    return f"realesrgan-ncnn-vulkan-{UPSCALER_VERSION}-{asset}.zip"


def get_release_url(platform_name: str) -> str:
    return f"{UPSCALER_RELEASE_URL}/{get_release_archive_name(platform_name)}"


def normalize_factor(factor: str) -> str:
    factor = factor.strip().lower()
    if factor not in VALID_UPSCALER_FACTORS:
        msg = (
            f'Invalid upscale factor: "{factor}".'
            f' Only {" and ".join(f"{f!r}" for f in VALID_UPSCALER_FACTORS)} are supported.'
        )
        raise ValueError(msg)
    return factor


def parse_extensions(extensions: str) -> tuple[str, ...]:
    exts = []
    for ext in extensions.split(","):
        ext = ext.strip().lower()  # noqa: PLW2901
        if not ext:
            continue
        exts.append(ext if ext.startswith(".") else f".{ext}")

    if not exts:
        msg = f'No image extensions in "{extensions}".'
        raise ValueError(msg)

    return tuple(exts)


@dataclass(frozen=True)
class UpscalerConfig:
    folder: Path
    command: str = DEFAULT_UPSCALER_COMMAND
    model: str = DEFAULT_UPSCALER_MODEL
    factor: str = DEFAULT_UPSCALER_FACTOR

    def __post_init__(self) -> None:
        # The tool runs with its own folder as the working directory.
        object.__setattr__(self, "folder", Path(self.folder).absolute())
        object.__setattr__(self, "factor", normalize_factor(self.factor))

    def get_executable(self) -> Path:
        return self.folder / self.command

    def is_installed(self) -> bool:
        exe = self.get_executable()
        return exe.is_file() and os.access(exe, os.X_OK)
