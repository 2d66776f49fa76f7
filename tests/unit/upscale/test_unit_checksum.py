import hashlib
from pathlib import Path

import pytest

from midjourney_upscaler.upscale.checksum import (
    VALID_CHECKSUMS,
    get_sha256,
    verify_archive,
    verify_checksum,
)
from midjourney_upscaler.upscale.errors import ChecksumError

_CONTENT = b"not really a zip file"
_SHA = hashlib.sha256(_CONTENT).hexdigest()


def _write(file: Path) -> Path:
    file.write_bytes(_CONTENT)
    return file


class TestChecksum:
    def test_get_sha256(self, tmp_path: Path):
        assert get_sha256(_write(tmp_path / "a.zip")) == _SHA

    def test_verify_ok(self, tmp_path: Path):
        verify_checksum(_write(tmp_path / "a.zip"), _SHA.upper())

    def test_verify_mismatch_raises(self, tmp_path: Path):
        with pytest.raises(ChecksumError, match="Checksum verification failed"):
            verify_checksum(_write(tmp_path / "a.zip"), "0" * 64)

    def test_known_release_names(self):
        assert set(VALID_CHECKSUMS) == {
            "realesrgan-ncnn-vulkan-20220424-macos.zip",
            "realesrgan-ncnn-vulkan-20220424-windows.zip",
            "realesrgan-ncnn-vulkan-20220424-ubuntu.zip",
        }


class TestVerifyArchive:
    def test_unknown_name_is_not_checked(self, tmp_path: Path):
        assert not verify_archive(_write(tmp_path / "custom.zip"))

    def test_known_name_is_checked(self, tmp_path: Path):
        archive = _write(tmp_path / "release.zip")
        assert verify_archive(archive, {"release.zip": _SHA})

    def test_known_release_with_bad_content_raises(self, tmp_path: Path):
        archive = _write(tmp_path / "realesrgan-ncnn-vulkan-20220424-ubuntu.zip")
        with pytest.raises(ChecksumError):
            verify_archive(archive)
