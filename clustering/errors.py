"""
clustering/errors.py

Exceptions raised by the clustering engine, its collaborators and diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class InputErrorDetail:
    """
    Structured detail for one rejected input condition.
    """

    code: str
    message: str
    context: dict[str, Any] | None = None


class ClusteringError(Exception):
    """Base exception for clustering failures."""


class InvalidInputError(ClusteringError, ValueError):
    """
    Raised when inputs cannot be clustered safely.
    """

    def __init__(self, *, message: str, errors: Sequence[InputErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    @classmethod
    def single(cls, code: str, message: str, **context: Any) -> "InvalidInputError":
        return cls(
            message=message,
            errors=[InputErrorDetail(code=code, message=message, context=context or None)],
        )

    @property
    def codes(self) -> set[str]:
        return {error.code for error in self.errors}

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class InvalidComputationError(ClusteringError, ArithmeticError):
    """Raised when a computation yields NaN or an otherwise invalid number."""
