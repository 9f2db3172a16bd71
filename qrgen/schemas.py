from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ErrorCorrection(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    QUARTILE = "Quartile"
    HIGH = "High"

    @classmethod
    def parse(cls, value: str) -> "ErrorCorrection":
        for level in cls:
            if level.value.lower() == value.strip().lower():
                return level
        raise ValueError("QR Code error correction level must be either High, Quartile, Medium or Low.")


class OutputFormat(str, Enum):
    SVG = "SVG"
    PNG = "PNG"

    @property
    def extension(self) -> str:
        return self.value.lower()

    @classmethod
    def parse(cls, value: str) -> "OutputFormat":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError("Format must be either SVG or PNG.") from None


@dataclass(frozen=True)
class Record:
    line_number: int
    label: str
    payload: str


@dataclass(frozen=True)
class MalformedRow:
    line_number: int
    reason: str


@dataclass(frozen=True)
class QRMatrix:
    version: int
    modules: tuple[tuple[bool, ...], ...]

    @property
    def size(self) -> int:
        return len(self.modules)

    def is_dark(self, x: int, y: int) -> bool:
        return self.modules[y][x]


@dataclass(frozen=True)
class RenderedImage:
    data: bytes
    format: OutputFormat


@dataclass(frozen=True)
class RowOutcome:
    line_number: int
    label: str
    status: str
    output_path: Path | None = None
    reason: str | None = None

    @classmethod
    def success(cls, record: Record, output_path: Path) -> "RowOutcome":
        return cls(line_number=record.line_number, label=record.label, status="succeeded", output_path=output_path)

    @classmethod
    def failure(cls, line_number: int, label: str, reason: str) -> "RowOutcome":
        return cls(line_number=line_number, label=label, status="failed", reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(frozen=True)
class FileResult:
    input_path: Path
    status: str
    outcomes: tuple[RowOutcome, ...] = ()
    error: str | None = None

    @property
    def succeeded_rows(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failed_rows(self) -> int:
        return len(self.outcomes) - self.succeeded_rows


@dataclass(frozen=True)
class RunResult:
    files: tuple[FileResult, ...] = field(default_factory=tuple)
    run_id: int | None = None

    @property
    def succeeded_rows(self) -> int:
        return sum(result.succeeded_rows for result in self.files)

    @property
    def failed_rows(self) -> int:
        return sum(result.failed_rows for result in self.files)

    @property
    def status(self) -> str:
        if any(result.status == "failed" for result in self.files):
            return "failed"
        return "succeeded"
