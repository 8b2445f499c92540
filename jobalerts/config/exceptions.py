"""Custom exceptions for configuration management."""

from typing import List, Optional

from pydantic import ValidationError


class ConfigurationError(Exception):
    """
    Raised when configuration is missing or invalid.

    Carries every validation problem found, not just the first, plus
    suggestions for fixing them, and renders them as a numbered list.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    @classmethod
    def from_validation_error(
        cls,
        message: str,
        error: ValidationError,
        suggestions: Optional[List[str]] = None,
    ) -> "ConfigurationError":
        """Build an error with one readable line per pydantic error."""
        errors = []
        for detail in error.errors():
            field_path = " -> ".join(str(loc) for loc in detail["loc"]) or "(root)"
            error_type = detail["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ("string_type", "int_type", "bool_type", "float_type"):
                expected_type = error_type.replace("_type", "")
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, "
                    f"got {detail.get('input')!r}"
                )
            elif "enum" in error_type:
                errors.append(f"Invalid value for '{field_path}': {detail['msg']}")
            else:
                errors.append(f"{field_path}: {detail['msg']}")

        return cls(message, errors=errors, suggestions=suggestions)

    def _format_message(self) -> str:
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"  - {suggestion}")

        return "\n".join(parts)
