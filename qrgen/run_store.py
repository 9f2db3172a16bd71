from pathlib import Path

from sqlalchemy.orm import Session

from qrgen.db_models import ConversionRun, InputFileRun, RowOutcomeRecord, utc_now
from qrgen.schemas import RowOutcome


def create_run(db: Session, *, output_format: str, output_dir: Path, chunk_size: int) -> ConversionRun:
    run = ConversionRun(
        status="running",
        output_format=output_format,
        output_dir=str(output_dir),
        chunk_size=chunk_size,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def start_input_file(db: Session, run: ConversionRun, input_path: Path) -> InputFileRun:
    input_file = InputFileRun(run_id=run.id, input_path=str(input_path), status="running")
    db.add(input_file)
    db.commit()
    db.refresh(input_file)
    return input_file


def store_row_outcomes(db: Session, input_file: InputFileRun, outcomes: list[RowOutcome]) -> None:
    for outcome in outcomes:
        db.add(
            RowOutcomeRecord(
                file_id=input_file.id,
                line_number=outcome.line_number,
                label=outcome.label,
                status=outcome.status,
                output_path=str(outcome.output_path) if outcome.output_path else None,
                reason=outcome.reason,
            )
        )
        if outcome.succeeded:
            input_file.succeeded_rows += 1
        else:
            input_file.failed_rows += 1
    db.commit()


def finish_input_file(db: Session, input_file: InputFileRun, *, status: str, error: str | None = None) -> None:
    input_file.status = status
    input_file.error = error
    input_file.completed_at = utc_now()
    db.commit()


def finish_run(db: Session, run: ConversionRun, *, status: str, succeeded_rows: int, failed_rows: int) -> None:
    run.status = status
    run.succeeded_rows = succeeded_rows
    run.failed_rows = failed_rows
    run.completed_at = utc_now()
    db.commit()
