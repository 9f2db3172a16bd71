from collections.abc import Iterator
import csv
import logging
from pathlib import Path

from qrgen.errors import InputFileError, MalformedRowError
from qrgen.schemas import MalformedRow, Record


logger = logging.getLogger(__name__)

FIELDS_PER_ROW = 2


class RowSource:
    """Lazy (label, payload) rows of one delimited input file.

    Every iteration re-opens the file, so the source can be replayed. Rows
    with the wrong number of fields come out as ``MalformedRow`` items in
    place, keeping their line number, and do not stop the iteration.
    """

    def __init__(self, input_path: Path, *, skip_header: bool = False, delimiter: str = ",") -> None:
        self.input_path = input_path
        self.skip_header = skip_header
        self.delimiter = delimiter

    def __iter__(self) -> Iterator[Record | MalformedRow]:
        try:
            infile = self.input_path.open("r", encoding="utf-8", newline="")
        except OSError as exc:
            raise InputFileError(f"cannot open input file {self.input_path}: {exc.strerror or exc}") from exc

        with infile:
            try:
                yield from self._parse(csv.reader(infile, delimiter=self.delimiter))
            except UnicodeDecodeError as exc:
                raise InputFileError(f"input file {self.input_path} is not valid UTF-8: {exc}") from exc

    def _parse(self, reader) -> Iterator[Record | MalformedRow]:
        header_pending = self.skip_header
        while True:
            try:
                fields = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                if header_pending:
                    header_pending = False
                    continue
                yield MalformedRow(reader.line_num, f"line {reader.line_num}: malformed row ({exc})")
                continue

            if header_pending:
                # The header is dropped as-is, whatever it contains.
                header_pending = False
                continue
            if not fields:
                continue

            try:
                row: Record | MalformedRow = parse_row(reader.line_num, fields)
            except MalformedRowError as exc:
                logger.debug("malformed row", extra={"input_path": str(self.input_path), "line": reader.line_num})
                row = MalformedRow(reader.line_num, str(exc))
            yield row


def parse_row(line_number: int, fields: list[str]) -> Record:
    if len(fields) != FIELDS_PER_ROW:
        raise MalformedRowError(
            f"line {line_number}: malformed row (expected {FIELDS_PER_ROW} fields, got {len(fields)})"
        )

    label, payload = (value.strip() for value in fields)
    if not label:
        raise MalformedRowError(f"line {line_number}: malformed row (label is empty)")
    return Record(line_number=line_number, label=label, payload=payload)
