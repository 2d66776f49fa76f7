import shutil
import stat
import tempfile
import zipfile
from pathlib import Path

from loguru import logger

from midjourney_upscaler.upscale.checksum import verify_archive
from midjourney_upscaler.upscale.errors import UpscalerNotFoundError


def install_upscaler(archive: Path, install_dir: Path, command: str) -> Path:
    """Verify and unzip a downloaded upscaler release into 'install_dir'.

    Release archives wrap everything in one top-level folder; that folder is
    flattened so the command ends up directly under 'install_dir'.
    """
    if not archive.is_file():
        msg = f'Could not find upscaler archive: "{archive}".'
        raise FileNotFoundError(msg)

    verify_archive(archive)

    logger.info(f'Extracting "{archive}" to "{install_dir}".')

    with tempfile.TemporaryDirectory() as tmp_dir:
        with zipfile.ZipFile(archive) as z:
            z.extractall(tmp_dir)

        extracted_root = Path(tmp_dir)
        entries = list(extracted_root.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            extracted_root = entries[0]

        install_dir.mkdir(parents=True, exist_ok=True)
        for entry in extracted_root.iterdir():
            shutil.move(str(entry), str(install_dir / entry.name))

    exe = install_dir / command
    if not exe.is_file():
        msg = f'Upscaler command "{command}" not found in archive "{archive}".'
        raise UpscalerNotFoundError(msg)

    exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    return exe
