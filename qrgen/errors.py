class QrGenError(Exception):
    pass


class ConfigError(QrGenError):
    """Structurally invalid configuration. Fatal before any file is opened."""


class InputFileError(QrGenError):
    """An input file could not be opened or decoded. Fatal for that file."""


class RowError(QrGenError):
    """Failure scoped to a single row; the run continues."""


class MalformedRowError(RowError):
    pass


class EncodingError(RowError):
    pass


class CapacityExceededError(EncodingError):
    pass


class OutputError(RowError):
    pass
