"""Custom exceptions used across EvidFlow."""


class EvidFlowError(Exception):
    """Base error for the application."""


class ConfigError(EvidFlowError):
    """Configuration related error."""


class ImportStructureError(EvidFlowError):
    """Raised when the source table is structurally unusable (no header row)."""


class ImportContextError(EvidFlowError):
    """Raised when the fixed import context (program/organization) is missing."""


class ReportInvariantError(EvidFlowError):
    """Raised when an import report does not account for every row."""
