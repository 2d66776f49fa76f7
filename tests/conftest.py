import stat
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

from midjourney_upscaler.upscale.upscaler_config import UpscalerConfig

FAKE_COMMAND = "fake-upscaler"

# Stands in for realesrgan-ncnn-vulkan. Records when it runs, fails for
# inputs with "fail" in their name and otherwise writes an output bigger
# than the input.
_FAKE_UPSCALER_SCRIPT = """#!{python}
import os
import sys
import time
from pathlib import Path

args = sys.argv[1:]
in_file = Path(args[args.index("-i") + 1])
out_file = Path(args[args.index("-o") + 1])

events = Path({events_file!r})
with events.open("a") as f:
    f.write(f"enter {{time.time()}} {{os.getcwd()}} {{' '.join(args)}}\\n")

time.sleep({delay})

if "fail" in in_file.name:
    code = 1
else:
    out_file.write_bytes(b"x" * (in_file.stat().st_size + 4096))
    code = 0

with events.open("a") as f:
    f.write(f"exit {{time.time()}}\\n")

sys.exit(code)
"""


@dataclass
class FakeUpscaler:
    folder: Path
    events_file: Path

    def get_config(self, model: str = "realesrgan-x4plus", factor: str = "4k") -> UpscalerConfig:
        return UpscalerConfig(folder=self.folder, command=FAKE_COMMAND, model=model, factor=factor)

    def get_events(self) -> list[list[str]]:
        if not self.events_file.is_file():
            return []
        return [line.split(" ") for line in self.events_file.read_text().splitlines()]

    def get_num_calls(self) -> int:
        return sum(1 for event in self.get_events() if event[0] == "enter")

    def get_intervals(self) -> list[tuple[float, float]]:
        enters = [float(e[1]) for e in self.get_events() if e[0] == "enter"]
        exits = [float(e[1]) for e in self.get_events() if e[0] == "exit"]
        return sorted(zip(sorted(enters), sorted(exits), strict=True))


def make_fake_upscaler(folder: Path, delay: float = 0.0) -> FakeUpscaler:
    folder.mkdir(parents=True, exist_ok=True)
    events_file = folder.parent / f"{folder.name}-events.txt"

    exe = folder / FAKE_COMMAND
    exe.write_text(
        _FAKE_UPSCALER_SCRIPT.format(
            python=sys.executable, events_file=str(events_file), delay=delay
        )
    )
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR)

    return FakeUpscaler(folder, events_file)


@pytest.fixture
def fake_upscaler(tmp_path: Path) -> FakeUpscaler:
    return make_fake_upscaler(tmp_path / "upscaler")


@pytest.fixture
def slow_fake_upscaler(tmp_path: Path) -> FakeUpscaler:
    return make_fake_upscaler(tmp_path / "slow-upscaler", delay=0.2)


def write_image(file: Path, size: int = 2048) -> Path:
    file.parent.mkdir(parents=True, exist_ok=True)
    file.write_bytes(b"\x89PNG" + b"\0" * (size - 4))
    return file


@pytest.fixture
def make_image():
    return write_image
