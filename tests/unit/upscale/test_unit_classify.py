from pathlib import Path

from midjourney_upscaler.upscale.classify import (
    classify_exit_status,
    get_output_file,
    get_size_kb,
    get_skipped,
    is_already_upscaled,
    is_upscaler_output,
)
from midjourney_upscaler.upscale.models import Failed, OutcomeKind, Skipped, Success, WorkItem


def _make_item(tmp_path: Path, src_size: int, out_size: int | None) -> WorkItem:
    source = tmp_path / "0001_portrait_a.png"
    source.write_bytes(b"s" * src_size)
    output = get_output_file(source, "realesrgan-x4plus", "4k")
    if out_size is not None:
        output.write_bytes(b"o" * out_size)
    return WorkItem(source, output)


class TestGetOutputFile:
    def test_uppercase_extension(self):
        assert get_output_file(Path("/a/b/img.PNG"), "realesrgan-x4plus", "4k") == Path(
            "/a/b/img.realesrgan-x4plus-4k.webp"
        )

    def test_only_last_extension_stripped(self):
        assert get_output_file(Path("/a/img.v2.jpg"), "m", "8k") == Path("/a/img.v2.m-8k.webp")


class TestIsUpscalerOutput:
    def test_output_name(self):
        assert is_upscaler_output(Path("/a/img.realesrgan-x4plus-8k.webp"), "realesrgan-x4plus")

    def test_plain_webp(self):
        assert not is_upscaler_output(Path("/a/img.webp"), "realesrgan-x4plus")

    def test_unknown_factor(self):
        assert not is_upscaler_output(Path("/a/img.realesrgan-x4plus-2k.webp"), "realesrgan-x4plus")


class TestGetSizeKb:
    def test_rounds_down(self, tmp_path: Path):
        file = tmp_path / "f.bin"
        file.write_bytes(b"x" * 2047)
        assert get_size_kb(file) == 1


class TestIsAlreadyUpscaled:
    def test_no_output(self, tmp_path: Path):
        assert not is_already_upscaled(_make_item(tmp_path, 4096, None))

    def test_bigger_output(self, tmp_path: Path):
        assert is_already_upscaled(_make_item(tmp_path, 4096, 8192))

    def test_same_kb_output_is_not_done(self, tmp_path: Path):
        # 4096 and 5000 bytes are both 4 kB.
        assert not is_already_upscaled(_make_item(tmp_path, 4096, 5000))

    def test_smaller_output(self, tmp_path: Path):
        assert not is_already_upscaled(_make_item(tmp_path, 8192, 4096))

    def test_get_skipped(self, tmp_path: Path):
        item = _make_item(tmp_path, 1024, 10 * 1024)
        assert get_skipped(item) == Skipped(item.source_path, item.output_path, 10)


class TestClassifyExitStatus:
    def test_success_measures_output(self, tmp_path: Path):
        item = _make_item(tmp_path, 1024, 3 * 1024)
        outcome = classify_exit_status(item, 0)
        assert outcome == Success(item.source_path, item.output_path, 3)
        assert outcome.kind == OutcomeKind.SUCCESS

    def test_non_zero_exit_is_failed(self, tmp_path: Path):
        item = _make_item(tmp_path, 1024, 3 * 1024)
        outcome = classify_exit_status(item, 1)
        assert outcome == Failed(item.source_path)
        assert outcome.kind == OutcomeKind.FAILED

    def test_zero_exit_without_output_is_failed(self, tmp_path: Path):
        item = _make_item(tmp_path, 1024, None)
        assert classify_exit_status(item, 0) == Failed(item.source_path)
