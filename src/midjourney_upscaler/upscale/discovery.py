from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from midjourney_upscaler.upscale.classify import get_output_file, is_upscaler_output
from midjourney_upscaler.upscale.errors import NoInputError
from midjourney_upscaler.upscale.models import WorkItem
from midjourney_upscaler.upscale.upscaler_config import IMAGE_EXTENSIONS


def find_input_images(
    root_dir: Path, extensions: tuple[str, ...] = IMAGE_EXTENSIONS
) -> Iterator[Path]:
    allowed = {ext.lower() for ext in extensions}

    for file in root_dir.rglob("*"):
        if file.is_file() and file.suffix.lower() in allowed:
            yield file


def get_work_items(
    root_dir: Path,
    model: str,
    factor: str,
    extensions: tuple[str, ...] = IMAGE_EXTENSIONS,
) -> list[WorkItem]:
    if not root_dir.is_dir():
        msg = f'Could not find input directory: "{root_dir}".'
        raise NotADirectoryError(msg)

    root_dir = root_dir.absolute()

    work_items = [
        WorkItem(source_path=image, output_path=get_output_file(image, model, factor))
        for image in sorted(find_input_images(root_dir, extensions))
        # Outputs of earlier runs are not inputs, even when ".webp" is an allowed extension.
        if not is_upscaler_output(image, model)
    ]
    if not work_items:
        msg = f'No images found in the directory "{root_dir}".'
        raise NoInputError(msg)

    logger.info(f'Found {len(work_items)} images to upscale in "{root_dir}".')

    return work_items
