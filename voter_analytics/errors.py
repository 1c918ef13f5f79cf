from __future__ import annotations

from typing import Optional


class InputFormatError(ValueError):
    """The uploaded file was rejected before anything was persisted."""

    title = "Invalid file"


class MalformedFileError(InputFormatError):
    title = "Error parsing CSV"


class FileTooLargeError(InputFormatError):
    title = "File too large"


class UnsupportedFileTypeError(InputFormatError):
    title = "Invalid file type"


class NoValidRowsError(ValueError):
    """Every row failed validation; the previous dataset is left in place."""


class PersistenceError(RuntimeError):
    """
    A database write failed mid-upload.

    schema_missing distinguishes "the table isn't there" (an operator problem)
    from everything else so the API can word the message accordingly.
    """

    def __init__(self, message: str, *, schema_missing: bool = False, batch: Optional[int] = None):
        super().__init__(message)
        self.schema_missing = schema_missing
        self.batch = batch


class NaturalLanguageQueryError(RuntimeError):
    """The LLM call failed or its reply could not be turned into a filter."""


class InvalidMappingError(InputFormatError):
    """A user-supplied column mapping names an unknown header or field."""

    title = "Invalid field mapping"
