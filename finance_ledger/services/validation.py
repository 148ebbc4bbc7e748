"""Violation collector shared by the ledger services.

Checks append to a :class:`ValidationResult` instead of raising, so callers
receive every violation of a request at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from finance_ledger.services.ledger import ValidationError, Violation

__all__ = ["ValidationError", "ValidationResult", "Violation"]


@dataclass
class ValidationResult:
    violations: list[Violation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def add(self, field_name: str, message: str) -> None:
        self.violations.append(Violation(field_name, message))

    def check(self, condition: bool, field_name: str, message: str) -> bool:
        """Record a violation when ``condition`` is false. Returns ``condition``."""
        if not condition:
            self.add(field_name, message)
        return condition

    def raise_if_invalid(self) -> None:
        if self.violations:
            raise ValidationError(self.violations)
