"""Validation package."""

from lume.validation.validator import InputValidator, ValidationFailure

__all__ = ["InputValidator", "ValidationFailure"]
