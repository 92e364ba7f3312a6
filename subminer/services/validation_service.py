"""Service for validating system setup and dependencies."""

import subprocess

from subminer.config import SubMinerConfig
from subminer.exceptions import AnkiConnectApiError, AnkiConnectionError
from subminer.models import ValidationIssue, ValidationResult
from subminer.services.anki_connect import AnkiConnectClient
from subminer.utils import ensure_directory


class ValidationService:
    """Validate system setup and dependencies (stateless service)."""

    def __init__(self, config: SubMinerConfig, client: AnkiConnectClient):
        """Initialize the validation service.

        Args:
            config: Configuration to validate against
            client: AnkiConnect client used for the Anki checks
        """
        self.config = config
        self.client = client

    def validate_setup(self) -> ValidationResult:
        """Run all validation checks.

        Returns:
            ValidationResult with status of each check

        Note:
            This method never raises exceptions - all errors are captured
            in the ValidationResult.
        """
        issues = []

        ankiconnect_ok, anki_msg = self._check_ankiconnect()
        if not ankiconnect_ok:
            issues.append(ValidationIssue(component="AnkiConnect", severity="ERROR", message=anki_msg))

        ffmpeg_ok, ffmpeg_msg = self._check_ffmpeg()
        if not ffmpeg_ok:
            # Cards still get their sentence without ffmpeg
            issues.append(ValidationIssue(component="ffmpeg", severity="WARNING", message=ffmpeg_msg))

        deck_ok = False
        if ankiconnect_ok:
            deck_ok, deck_msg = self._check_deck_exists()
            if not deck_ok:
                issues.append(ValidationIssue(component="Anki Deck", severity="ERROR", message=deck_msg))

        note_type_ok = False
        if ankiconnect_ok:
            note_type_ok, note_type_msg = self._check_note_type_exists()
            if not note_type_ok:
                issues.append(
                    ValidationIssue(component="Note Type", severity="ERROR", message=note_type_msg)
                )

        try:
            ensure_directory(self.config.media_temp_folder)
        except OSError as e:
            issues.append(
                ValidationIssue(
                    component="Temp Folder",
                    severity="WARNING",
                    message=f"Could not create temp folder: {e}",
                )
            )

        return ValidationResult(
            ankiconnect_ok=ankiconnect_ok,
            ffmpeg_ok=ffmpeg_ok,
            deck_exists=deck_ok,
            note_type_exists=note_type_ok,
            issues=issues,
        )

    def _check_ankiconnect(self) -> tuple[bool, str]:
        """Check if AnkiConnect is running and accessible.

        Returns:
            Tuple of (success, message)
        """
        try:
            version = self.client.version()
            return True, f"AnkiConnect v{version} is running"
        except AnkiConnectionError:
            return False, "Cannot connect to Anki. Is Anki running with AnkiConnect installed?"
        except AnkiConnectApiError as e:
            return False, f"AnkiConnect error: {e}"

    def _check_ffmpeg(self) -> tuple[bool, str]:
        """Check if ffmpeg is installed and accessible.

        Returns:
            Tuple of (success, message)
        """
        try:
            result = subprocess.run(
                ["ffmpeg", "-version"],
                capture_output=True,
                text=True,
                timeout=10,
            )

            if result.returncode != 0:
                return False, "ffmpeg returned non-zero exit code"

            version_line = result.stdout.split("\n")[0] if result.stdout else "unknown"
            return True, version_line

        except FileNotFoundError:
            return False, "ffmpeg not found. Install it and ensure it's in PATH"
        except subprocess.TimeoutExpired:
            return False, "ffmpeg check timed out"
        except (subprocess.SubprocessError, OSError) as e:
            return False, f"Unexpected error: {e}"

    def _check_deck_exists(self) -> tuple[bool, str]:
        """Check if the watched deck exists in Anki.

        Returns:
            Tuple of (success, message)
        """
        deck_name = self.config.anki_deck_name
        if not deck_name:
            return True, "No deck configured, watching all decks"

        try:
            decks = self.client.deck_names()
        except (AnkiConnectionError, AnkiConnectApiError) as e:
            return False, f"Error checking deck: {e}"

        if deck_name in decks:
            return True, f"Deck '{deck_name}' found"
        available = ", ".join(decks[:5])
        more = "..." if len(decks) > 5 else ""
        return False, f"Deck '{deck_name}' not found. Available: {available}{more}"

    def _check_note_type_exists(self) -> tuple[bool, str]:
        """Check if the sentence card note type exists in Anki.

        Returns:
            Tuple of (success, message)
        """
        note_type = self.config.sentence_card_model
        if not note_type:
            return True, "No sentence card note type configured"

        try:
            models = self.client.model_names()
        except (AnkiConnectionError, AnkiConnectApiError) as e:
            return False, f"Error checking note type: {e}"

        if note_type in models:
            return True, f"Note type '{note_type}' found"
        available = ", ".join(models[:5])
        more = "..." if len(models) > 5 else ""
        return False, f"Note type '{note_type}' not found. Available: {available}{more}"
