"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # Import file
    ProductImportParseError,
    EmptyImportFileError,
    MissingColumnsError,
    ImportFileTooLargeError,

    # Import session
    ImportSessionNotFoundError,
    InvalidImportTransitionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # Import file
    "ProductImportParseError",
    "EmptyImportFileError",
    "MissingColumnsError",
    "ImportFileTooLargeError",

    # Import session
    "ImportSessionNotFoundError",
    "InvalidImportTransitionError",
]
