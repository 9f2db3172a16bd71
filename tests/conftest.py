from collections.abc import Callable
from pathlib import Path

import pytest

from qrgen.config import EncodingConfig, ProcessingConfig, RenderConfig
from qrgen.pipeline import PipelineRunner


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    (tmp_path / "input").mkdir(parents=True, exist_ok=True)
    (tmp_path / "output").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def encoding_config() -> EncodingConfig:
    return EncodingConfig(version_min=1, version_max=10)


@pytest.fixture()
def render_config() -> RenderConfig:
    return RenderConfig(border=2)


@pytest.fixture()
def processing_config(temp_workspace: Path) -> ProcessingConfig:
    return ProcessingConfig(output_dir=temp_workspace / "output", retry_backoff_seconds=0)


@pytest.fixture()
def write_input(temp_workspace: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str) -> Path:
        path = temp_workspace / "input" / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def runner(encoding_config, render_config, processing_config) -> PipelineRunner:
    return PipelineRunner(encoding_config, render_config, processing_config)
