from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import itertools
import logging
from pathlib import Path
from typing import TypeVar

from qrgen.config import EncodingConfig, RenderConfig
from qrgen.encoder import SymbolEncoder
from qrgen.errors import RowError
from qrgen.output_sink import OutputSink
from qrgen.renderer import render
from qrgen.schemas import MalformedRow, Record, RenderedImage, RowOutcome


logger = logging.getLogger(__name__)
T = TypeVar("T")


def iter_chunks(items: Iterable[T], chunk_size: int) -> Iterator[list[T]]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    iterator = iter(items)
    while chunk := list(itertools.islice(iterator, chunk_size)):
        yield chunk


@dataclass(frozen=True)
class _Rendered:
    record: Record
    image: RenderedImage


class ChunkScheduler:
    """Runs encode -> render -> write over fixed-size chunks of rows.

    Up to ``chunk_size`` rows of one chunk are worked on at once; the next
    chunk starts only after every worker of the current one has returned.
    Inside a chunk, output names are reserved in input order between the
    render and write phases, so suffixes do not depend on thread timing.
    """

    def __init__(
        self,
        *,
        encoder: SymbolEncoder,
        encoding: EncodingConfig,
        rendering: RenderConfig,
        sink: OutputSink,
        chunk_size: int = 1,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.encoder = encoder
        self.encoding = encoding
        self.rendering = rendering
        self.sink = sink
        self.chunk_size = chunk_size

    def run(self, rows: Iterable[Record | MalformedRow]) -> Iterator[list[RowOutcome]]:
        """Yield the outcomes of each chunk, in input order, once the chunk is done."""
        with ThreadPoolExecutor(max_workers=self.chunk_size, thread_name_prefix="qrgen-worker") as executor:
            for chunk in iter_chunks(rows, self.chunk_size):
                yield self._process_chunk(executor, chunk)

    def _process_chunk(self, executor: ThreadPoolExecutor, chunk: list[Record | MalformedRow]) -> list[RowOutcome]:
        # executor.map joins on iteration, which is the barrier between phases.
        built = list(executor.map(self._build, chunk))

        pending: list[tuple[int, _Rendered, Path]] = []
        outcomes: list[RowOutcome | None] = []
        for index, item in enumerate(built):
            if isinstance(item, RowOutcome):
                outcomes.append(item)
                continue
            try:
                path = self.sink.reserve(item.record.label, item.image.format)
            except RowError as exc:
                outcomes.append(RowOutcome.failure(item.record.line_number, item.record.label, str(exc)))
                continue
            outcomes.append(None)
            pending.append((index, item, path))

        written = executor.map(lambda job: self._write(job[1], job[2]), pending)
        for (index, _, _), outcome in zip(pending, written):
            outcomes[index] = outcome
        return outcomes

    def _build(self, item: Record | MalformedRow) -> "_Rendered | RowOutcome":
        if isinstance(item, MalformedRow):
            return RowOutcome.failure(item.line_number, "", item.reason)
        try:
            matrix = self.encoder.encode(item.payload, self.encoding)
            image = render(matrix, self.rendering)
        except RowError as exc:
            return RowOutcome.failure(item.line_number, item.label, str(exc))
        except Exception as exc:
            logger.exception("unexpected error building row", extra={"line": item.line_number, "label": item.label})
            return RowOutcome.failure(item.line_number, item.label, f"unexpected error: {exc}")
        return _Rendered(record=item, image=image)

    def _write(self, rendered: _Rendered, path: Path) -> RowOutcome:
        record = rendered.record
        try:
            written = self.sink.write(rendered.image, path)
        except RowError as exc:
            return RowOutcome.failure(record.line_number, record.label, str(exc))
        except Exception as exc:
            logger.exception("unexpected error writing row", extra={"line": record.line_number, "label": record.label})
            return RowOutcome.failure(record.line_number, record.label, f"unexpected error: {exc}")
        return RowOutcome.success(record, written)
