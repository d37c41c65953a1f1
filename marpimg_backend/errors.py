"""Typed failures of the convert pipeline.

Each error carries the HTTP status and the user-visible message; route
handlers translate them into HTTPException.
"""
from __future__ import annotations


class PipelineError(Exception):
    status_code = 500
    detail = "Conversion failed."

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# Validation: raised before any external process runs.
class UploadValidationError(PipelineError):
    status_code = 400
    detail = "Invalid upload."


class MissingFileError(UploadValidationError):
    detail = "No file uploaded."


class InvalidFileTypeError(UploadValidationError):
    detail = "Unsupported file type. Upload a Marp Markdown file (.md)."


class EmptyUploadError(UploadValidationError):
    detail = "Uploaded file is empty."


class PayloadTooLargeError(UploadValidationError):
    status_code = 413
    detail = "File too large."


# Conversion: the rendering tool failed or produced nothing.
class ConversionError(PipelineError):
    detail = "Conversion failed."


class ConversionFailedError(ConversionError):
    pass


class ConversionTimeoutError(ConversionError):
    detail = "Conversion timed out."


class NoImagesProducedError(ConversionError):
    status_code = 422
    detail = "No images were produced. Check that the file contains at least one slide."


class ArchiveError(PipelineError):
    detail = "Failed to build the ZIP archive."
