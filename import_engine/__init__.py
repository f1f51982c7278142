"""
import_engine - CSV import pipeline.

Public API:
    TicketImportPipeline(session).preview(content)  → ImportPreview
    TicketImportPipeline(session).confirm(rows)     → ImportReport
    ContactImportPipeline(...)                      (same shape)
    csv_codec.decode / csv_codec.encode
"""

from import_engine.importer import (                 # noqa: F401
    CsvFormatError,
    RowError,
    ContactImportPipeline,
    ImportPipeline,
    TicketImportPipeline,
)
from import_engine.report import ImportPreview, ImportReport     # noqa: F401
from import_engine.row_validator import ValidationResult   # noqa: F401
