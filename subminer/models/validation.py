"""Data models for setup validation."""

from dataclasses import dataclass, field


@dataclass
class ValidationIssue:
    """A single validation issue."""

    component: str  # Component that failed (e.g., "AnkiConnect", "ffmpeg")
    severity: str  # "ERROR" or "WARNING"
    message: str

    def __str__(self) -> str:
        return f"[{self.severity}] {self.component}: {self.message}"


@dataclass
class ValidationResult:
    """Result of system validation."""

    ankiconnect_ok: bool
    ffmpeg_ok: bool
    deck_exists: bool
    note_type_exists: bool
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        """Check if all validation checks passed."""
        return all(
            [
                self.ankiconnect_ok,
                self.ffmpeg_ok,
                self.deck_exists,
                self.note_type_exists,
            ]
        )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "ERROR" for issue in self.issues)

    def get_errors(self) -> list[ValidationIssue]:
        """Get all error-level issues."""
        return [issue for issue in self.issues if issue.severity == "ERROR"]

    def get_warnings(self) -> list[ValidationIssue]:
        """Get all warning-level issues."""
        return [issue for issue in self.issues if issue.severity == "WARNING"]
