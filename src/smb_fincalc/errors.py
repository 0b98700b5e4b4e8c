# SMB FinCalc - Financial analytics engine for SMB accounting dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception classes raised by SMB FinCalc.

Numerically degenerate input (a zero price, a loan without rate, an empty
product list) is never an error: calculators return zero or empty results.
The classes below cover the two remaining cases:

- validation failures that block a state transition (finalizing an
  unbalanced balance snapshot, editing a finalized one),
- structurally invalid reference data or configuration.

All of them derive from ``ValueError`` so that callers written against the
built-in exception keep working.
"""

from typing import Any


class ValidationError(ValueError):
    """A record is structurally valid but fails a business invariant."""


class BalanceNotBalancedError(ValidationError):
    """Raised when finalizing a snapshot whose equation does not hold."""

    def __init__(self, label: str, check: Any):
        self.label = label
        self.check = check
        super().__init__(
            f"Balance snapshot {label!r} is not balanced. "
            f"Difference: {check.difference:.2f}"
        )


class SnapshotFinalizedError(ValidationError):
    """Raised when a finalized balance snapshot is modified."""


class ClassificationError(ValueError):
    """Raised when a chart-of-accounts classification table is invalid."""


class ConfigError(ValueError):
    """Raised when the engine configuration cannot be loaded or parsed."""


class ExpressionError(ValueError):
    """Raised when a rule or ratio expression uses unsupported syntax."""
