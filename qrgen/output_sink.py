import logging
from pathlib import Path
import re
import threading

from qrgen.errors import OutputError
from qrgen.retry import RetryExhaustedError, run_with_retries
from qrgen.schemas import OutputFormat, RenderedImage


logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 200
MAX_COLLISION_SUFFIX = 9999
_UNSAFE_CHARS = re.compile(r"[^\w.-]+")


def sanitize_label(label: str) -> str:
    name = _UNSAFE_CHARS.sub("_", label.strip())
    name = name.lstrip("._")[:MAX_LABEL_LENGTH].rstrip("_")
    if not name:
        raise OutputError(f"label {label!r} has no filesystem-safe characters")
    return name


class OutputSink:
    """Writes rendered images as ``<label>.<ext>`` inside one directory.

    Names are handed out by ``reserve``; a name is never given twice in a
    run, and files already on disk are never overwritten. Colliding labels
    get ``_1``, ``_2``... before the extension.
    """

    def __init__(self, output_dir: Path, *, max_write_retries: int = 2, retry_backoff_seconds: float = 0.5) -> None:
        self.output_dir = output_dir
        self.max_write_retries = max_write_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self._reserved: set[Path] = set()
        self._lock = threading.Lock()

    def reserve(self, label: str, output_format: OutputFormat) -> Path:
        stem = sanitize_label(label)
        extension = output_format.extension
        with self._lock:
            for suffix in range(MAX_COLLISION_SUFFIX + 1):
                name = f"{stem}.{extension}" if suffix == 0 else f"{stem}_{suffix}.{extension}"
                path = self.output_dir / name
                if path in self._reserved:
                    continue
                try:
                    taken = path.exists()
                except OSError as exc:
                    raise OutputError(f"cannot inspect output path {path}: {exc.strerror or exc}") from exc
                if taken:
                    continue
                self._reserved.add(path)
                return path
        raise OutputError(f"no free file name for label {label!r} after {MAX_COLLISION_SUFFIX} attempts")

    def write(self, image: RenderedImage, path: Path) -> Path:
        try:
            run_with_retries(
                lambda: self._write_once(image, path),
                max_retries=self.max_write_retries,
                backoff_seconds=self.retry_backoff_seconds,
                description=f"write of {path.name}",
            )
        except RetryExhaustedError as exc:
            cause = exc.__cause__
            if isinstance(cause, FileExistsError):
                raise OutputError(f"output file already exists: {path}") from cause
            reason = cause.strerror if isinstance(cause, OSError) and cause.strerror else str(cause)
            raise OutputError(f"cannot write {path}: {reason}") from cause

        logger.debug("image written", extra={"output_path": str(path), "bytes": len(image.data)})
        return path

    @staticmethod
    def _write_once(image: RenderedImage, path: Path) -> None:
        # Exclusive create: a file that appeared after reservation is left alone.
        outfile = path.open("xb")
        try:
            with outfile:
                outfile.write(image.data)
        except OSError:
            path.unlink(missing_ok=True)
            raise
