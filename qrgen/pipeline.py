from collections.abc import Sequence
import logging
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from qrgen.chunker import ChunkScheduler
from qrgen.config import EncodingConfig, ProcessingConfig, RenderConfig
from qrgen.db_models import ConversionRun
from qrgen.encoder import QrcodeEncoder, SymbolEncoder
from qrgen.errors import InputFileError
from qrgen.output_sink import OutputSink
from qrgen.row_source import RowSource
from qrgen.run_store import create_run, finish_input_file, finish_run, start_input_file, store_row_outcomes
from qrgen.schemas import FileResult, RowOutcome, RunResult


logger = logging.getLogger(__name__)


class PipelineRunner:
    def __init__(
        self,
        encoding: EncodingConfig,
        rendering: RenderConfig,
        processing: ProcessingConfig,
        *,
        encoder: SymbolEncoder | None = None,
        session_factory: sessionmaker[Session] | None = None,
        event_logger: logging.Logger | None = None,
    ) -> None:
        self.encoding = encoding
        self.rendering = rendering
        self.processing = processing
        self.encoder = encoder or QrcodeEncoder()
        self.session_factory = session_factory
        self.logger = event_logger or logger

    def run(self, input_paths: Sequence[Path]) -> RunResult:
        # One sink per run: name reservations span every input file.
        sink = OutputSink(
            self.processing.output_dir,
            max_write_retries=self.processing.max_write_retries,
            retry_backoff_seconds=self.processing.retry_backoff_seconds,
        )
        scheduler = ChunkScheduler(
            encoder=self.encoder,
            encoding=self.encoding,
            rendering=self.rendering,
            sink=sink,
            chunk_size=self.processing.chunk_size,
        )

        if self.session_factory is None:
            files = tuple(self._process_file(scheduler, path) for path in input_paths)
            return RunResult(files=files)

        with self.session_factory() as db:
            run = create_run(
                db,
                output_format=self.rendering.format.value,
                output_dir=self.processing.output_dir,
                chunk_size=self.processing.chunk_size,
            )
            files = tuple(self._process_file(scheduler, path, db=db, run=run) for path in input_paths)
            result = RunResult(files=files, run_id=run.id)
            finish_run(
                db,
                run,
                status=result.status,
                succeeded_rows=result.succeeded_rows,
                failed_rows=result.failed_rows,
            )
            return result

    def _process_file(
        self,
        scheduler: ChunkScheduler,
        input_path: Path,
        *,
        db: Session | None = None,
        run: ConversionRun | None = None,
    ) -> FileResult:
        self.logger.info("processing input file", extra={"input_path": str(input_path)})
        ledger_file = start_input_file(db, run, input_path) if db is not None else None
        source = RowSource(
            input_path,
            skip_header=self.processing.skip_header,
            delimiter=self.processing.delimiter,
        )

        outcomes: list[RowOutcome] = []
        try:
            for chunk_outcomes in scheduler.run(source):
                for outcome in chunk_outcomes:
                    self._log_outcome(input_path, outcome)
                outcomes.extend(chunk_outcomes)
                if ledger_file is not None:
                    store_row_outcomes(db, ledger_file, chunk_outcomes)
        except InputFileError as exc:
            self.logger.error("input file failed", extra={"input_path": str(input_path), "error": str(exc)})
            if ledger_file is not None:
                finish_input_file(db, ledger_file, status="failed", error=str(exc))
            return FileResult(input_path=input_path, status="failed", outcomes=tuple(outcomes), error=str(exc))

        result = FileResult(input_path=input_path, status="completed", outcomes=tuple(outcomes))
        if ledger_file is not None:
            finish_input_file(db, ledger_file, status="completed")
        self.logger.info(
            "input file completed",
            extra={
                "input_path": str(input_path),
                "succeeded_rows": result.succeeded_rows,
                "failed_rows": result.failed_rows,
            },
        )
        return result

    def _log_outcome(self, input_path: Path, outcome: RowOutcome) -> None:
        fields = {"input_path": str(input_path), "line": outcome.line_number, "label": outcome.label}
        if outcome.succeeded:
            self.logger.info("row converted", extra={**fields, "output_path": str(outcome.output_path)})
        else:
            self.logger.warning("row failed", extra={**fields, "reason": outcome.reason})
