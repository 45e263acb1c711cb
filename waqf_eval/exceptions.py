"""Errors surfaced to the user as a failed operation"""


class WaqfError(Exception):
    """Base class for expected, user-facing failures"""


class ValidationError(WaqfError):
    """Form input that cannot be saved"""


class ImportFileError(WaqfError):
    """An uploaded indicator workbook could not be used"""


class BackupError(WaqfError):
    """A backup document could not be restored"""
