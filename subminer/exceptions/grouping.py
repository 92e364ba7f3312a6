"""Grouped field (Kiku field grouping) exceptions."""

from .base import SubMinerException


class MalformedGroupedFieldError(SubMinerException):
    """Raised in strict grouping mode when a grouped fragment is malformed."""

    def __init__(self, field_name: str, reasons: list[str]):
        super().__init__(
            f"Malformed grouped fragments in field '{field_name}': {', '.join(reasons)}"
        )
        self.field_name = field_name
        self.reasons = reasons
