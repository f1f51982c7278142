"""
import_engine.report - Structured results of the preview and confirm steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import config
from import_engine.row_validator import ValidationResult


@dataclass
class ImportPreview:
    entity: str                                   # "ticket" | "contact"
    results: list[ValidationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def valid(self) -> int:
        return sum(1 for r in self.results if r.valid)

    @property
    def invalid(self) -> int:
        return self.total - self.valid

    @property
    def duplicates(self) -> int:
        return sum(1 for r in self.results if r.is_duplicate)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "valid": self.valid,
            "invalid": self.invalid,
            "duplicates": self.duplicates,
            "results": [r.to_dict(self.entity) for r in self.results],
        }


@dataclass
class ImportReport:
    created: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def add_error(self, reason: str):
        self.errors.append(reason)
        self.failed += 1

    def to_dict(self) -> dict:
        return {
            "success": True,
            "created": self.created,
            "failed": self.failed,
            "errors": self.errors[:config.IMPORT_ERROR_LIMIT],
        }
