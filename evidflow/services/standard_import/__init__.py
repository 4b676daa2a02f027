"""Standard import service package."""

from .api import (
    ImportPipeline,
    parse_table,
    resolve_context,
    run_import,
)
from .mapping import HeaderMapper, ImportConfig, load_import_config
from .models import (
    CanonicalField,
    CommitStatus,
    ImportContext,
    ImportPreview,
    ImportReport,
    StandardPayload,
)

__all__ = [
    "CanonicalField",
    "CommitStatus",
    "HeaderMapper",
    "ImportConfig",
    "ImportContext",
    "ImportPipeline",
    "ImportPreview",
    "ImportReport",
    "StandardPayload",
    "load_import_config",
    "parse_table",
    "resolve_context",
    "run_import",
]
