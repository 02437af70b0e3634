"""Compiler errors."""


class CompileError(Exception):
    """Base class for fatal compilation errors."""


class FormatError(CompileError):
    """Raised when a text value does not follow its expected grammar."""


class StructureError(CompileError):
    """Raised when a document lacks a required element."""
