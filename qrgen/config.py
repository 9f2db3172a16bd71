from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from qrgen.errors import ConfigError
from qrgen.schemas import ErrorCorrection, OutputFormat


load_dotenv()

MIN_VERSION = 1
MAX_VERSION = 40
MAX_SCALE = 255

Color = tuple[int, int, int]


def parse_color(value: str) -> Color:
    text = value.strip().removeprefix("#")
    if len(text) != 6:
        raise ConfigError(f"color must be 6 hex digits (RRGGBB), got {value!r}")
    try:
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError:
        raise ConfigError(f"color must be 6 hex digits (RRGGBB), got {value!r}") from None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class EncodingConfig:
    version_min: int = MIN_VERSION
    version_max: int = MAX_VERSION
    error_correction: ErrorCorrection = ErrorCorrection.HIGH
    mask: int | None = None
    boost_error_correction: bool = True

    def __post_init__(self) -> None:
        for name in ("version_min", "version_max"):
            version = getattr(self, name)
            if not MIN_VERSION <= version <= MAX_VERSION:
                raise ConfigError("QR Code Model 2 version number must be between 1 and 40 inclusive.")
        if self.version_min > self.version_max:
            raise ConfigError(
                f"QR version min ({self.version_min}) must not exceed QR version max ({self.version_max})."
            )
        if self.mask is not None and not 0 <= self.mask <= 7:
            raise ConfigError("QR mask must be between 0 and 7 inclusive.")


@dataclass(frozen=True)
class RenderConfig:
    format: OutputFormat = OutputFormat.SVG
    border: int = 4
    foreground: Color = (0, 0, 0)
    background: Color = (255, 255, 255)
    module_scale: int = 8
    suppress_rect: bool = False

    def __post_init__(self) -> None:
        if self.border < 0:
            raise ConfigError("Border must be a non-negative number.")
        if not 1 <= self.module_scale <= MAX_SCALE:
            raise ConfigError("The module scale must be a number between 1 and 255 inclusive.")
        for color in (self.foreground, self.background):
            if len(color) != 3 or any(not 0 <= channel <= 255 for channel in color):
                raise ConfigError(f"color channels must be between 0 and 255, got {color!r}")


@dataclass(frozen=True)
class ProcessingConfig:
    chunk_size: int = 1
    skip_header: bool = False
    delimiter: str = ","
    output_dir: Path = Path(".")
    max_write_retries: int = 2
    retry_backoff_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ConfigError("Chunk size must be a number greater than 0.")
        if len(self.delimiter) != 1:
            raise ConfigError("Delimiter must be a single character.")
        if self.max_write_retries < 0:
            raise ConfigError("Write retries must be a non-negative number.")


@dataclass(frozen=True)
class Settings:
    log_level: str
    output_dir: str
    version_min: int
    version_max: int
    error_correction: str
    mask: int | None
    boost_error_correction: bool
    border: int
    foreground: str
    background: str
    output_format: str
    module_scale: int
    suppress_rect: bool
    chunk_size: int
    delimiter: str
    skip_header: bool
    database_url: str
    max_write_retries: int
    retry_backoff_seconds: float

    def encoding_config(self) -> EncodingConfig:
        try:
            level = ErrorCorrection.parse(self.error_correction)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        return EncodingConfig(
            version_min=self.version_min,
            version_max=self.version_max,
            error_correction=level,
            mask=self.mask,
            boost_error_correction=self.boost_error_correction,
        )

    def render_config(self) -> RenderConfig:
        try:
            output_format = OutputFormat.parse(self.output_format)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        return RenderConfig(
            format=output_format,
            border=self.border,
            foreground=parse_color(self.foreground),
            background=parse_color(self.background),
            module_scale=self.module_scale,
            suppress_rect=self.suppress_rect,
        )

    def processing_config(self) -> ProcessingConfig:
        return ProcessingConfig(
            chunk_size=self.chunk_size,
            skip_header=self.skip_header,
            delimiter=self.delimiter,
            output_dir=resolve_output_dir(self.output_dir),
            max_write_retries=self.max_write_retries,
            retry_backoff_seconds=self.retry_backoff_seconds,
        )


def resolve_output_dir(value: str) -> Path:
    if value == "-":
        return Path.cwd()
    return Path(value)


def get_settings() -> Settings:
    mask = os.getenv("QR_MASK", "")
    return Settings(
        log_level=os.getenv("LOG_LEVEL", ""),
        output_dir=os.getenv("OUTPUT_DIR", "-"),
        version_min=_parse_int("QR_VERSION_MIN", os.getenv("QR_VERSION_MIN", "1")),
        version_max=_parse_int("QR_VERSION_MAX", os.getenv("QR_VERSION_MAX", "40")),
        error_correction=os.getenv("QR_ERROR_CORRECTION", "High"),
        mask=_parse_int("QR_MASK", mask) if mask else None,
        boost_error_correction=_parse_bool(os.getenv("QR_BOOST_ERROR_CORRECTION", "true")),
        border=_parse_int("QR_BORDER", os.getenv("QR_BORDER", "4")),
        foreground=os.getenv("QR_FOREGROUND", "000000"),
        background=os.getenv("QR_BACKGROUND", "FFFFFF"),
        output_format=os.getenv("OUTPUT_FORMAT", "SVG"),
        module_scale=_parse_int("PNG_SCALE", os.getenv("PNG_SCALE", "8")),
        suppress_rect=_parse_bool(os.getenv("SVG_SUPPRESS_RECT", "false")),
        chunk_size=_parse_int("CHUNK_SIZE", os.getenv("CHUNK_SIZE", "1")),
        delimiter=os.getenv("CSV_DELIMITER", ","),
        skip_header=_parse_bool(os.getenv("SKIP_HEADER", "false")),
        database_url=os.getenv("DATABASE_URL", ""),
        max_write_retries=_parse_int("MAX_WRITE_RETRIES", os.getenv("MAX_WRITE_RETRIES", "2")),
        retry_backoff_seconds=_parse_float("RETRY_BACKOFF_SECONDS", os.getenv("RETRY_BACKOFF_SECONDS", "0.5")),
    )
