import hashlib
from pathlib import Path

from loguru import logger

from midjourney_upscaler.upscale.errors import ChecksumError

VALID_CHECKSUMS = {
    "realesrgan-ncnn-vulkan-20220424-macos.zip": (
        "e0ad05580abfeb25f8d8fb55aaf7bedf552c375b5b4d9bd3c8d59764d2cc333a"
    ),
    "realesrgan-ncnn-vulkan-20220424-windows.zip": (
        "abc02804e17982a3be33675e4d471e91ea374e65b70167abc09e31acb412802d"
    ),
    "realesrgan-ncnn-vulkan-20220424-ubuntu.zip": (
        "e5aa6eb131234b87c0c51f82b89390f5e3e642b7b70f2b9bbe95b6a285a40c96"
    ),
}

_CHUNK_SIZE = 1024 * 1024


def get_sha256(file: Path) -> str:
    sha = hashlib.sha256()
    with file.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            sha.update(chunk)
    return sha.hexdigest()


def verify_checksum(file: Path, expected_checksum: str) -> None:
    actual_checksum = get_sha256(file)
    if actual_checksum != expected_checksum.lower():
        msg = f'Checksum verification failed for "{file}".'
        raise ChecksumError(msg)


def verify_archive(archive: Path, valid_checksums: dict[str, str] | None = None) -> bool:
    """Verify 'archive' if its name has a known checksum. Return True if it was checked."""
    if valid_checksums is None:
        valid_checksums = VALID_CHECKSUMS

    expected_checksum = valid_checksums.get(archive.name)
    if not expected_checksum:
        logger.warning(f'No known checksum for "{archive.name}" - not verifying.')
        return False

    verify_checksum(archive, expected_checksum)
    logger.info(f'Checksum OK for "{archive.name}".')

    return True
