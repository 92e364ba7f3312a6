"""Client for the AnkiConnect HTTP API with failure classification and retries."""

import base64
import logging
import time
from collections.abc import Callable
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from subminer.exceptions import AnkiConnectApiError, AnkiConnectionError
from subminer.models import NoteInfo

logger = logging.getLogger(__name__)

ANKICONNECT_VERSION = 6
DEFAULT_TIMEOUT = 10.0
MEDIA_UPLOAD_ACTION = "storeMediaFile"
MEDIA_UPLOAD_TIMEOUT = 30.0
MAX_RETRIES = 3
INITIAL_BACKOFF = 0.2  # Seconds
MAX_BACKOFF = 5.0
MAX_LOGGED_FAILURES = 5

_RETRYABLE_MESSAGES = (
    "connection reset",
    "connection refused",
    "connection aborted",
    "socket hang up",
    "network error",
    "timeout",
    "timed out",
)
_QUERY_SPECIAL_CHARS = '\\":*?()[]{}'


def escape_query_value(value: str) -> str:
    """Escape a value for use inside an Anki search term.

    Args:
        value: Raw field value, e.g. the expression of a note

    Returns:
        Value with each special search character prefixed by a backslash
    """
    return "".join(f"\\{ch}" if ch in _QUERY_SPECIAL_CHARS else ch for ch in value)


def added_today_query(deck_name: str = "") -> str:
    """Build the search query for notes added today.

    Args:
        deck_name: Optional deck to restrict the search to

    Returns:
        Anki search string
    """
    if deck_name:
        return f'"deck:{deck_name}" added:1'
    return "added:1"


def backoff_delay(attempt: int) -> float:
    """Delay in seconds before retry number `attempt` (1-based)."""
    return min(INITIAL_BACKOFF * 2 ** (attempt - 1), MAX_BACKOFF)


def is_retryable_error(error: BaseException) -> bool:
    """Check if a failed request is worth retrying.

    Connection-level failures and timeouts are retryable. Errors reported by
    Anki itself are not: retrying would get the same answer.

    Args:
        error: Exception raised while performing the request

    Returns:
        True if the request should be retried
    """
    if isinstance(error, AnkiConnectApiError):
        return False
    if isinstance(error, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MESSAGES)


class AnkiConnectClient:
    """AnkiConnect client with retry, backoff and log-flood protection.

    One instance owns its failure counter, so several integrations talking to
    different Anki instances do not affect each other.
    """

    def __init__(
        self,
        url: str,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            url: AnkiConnect endpoint, e.g. http://127.0.0.1:8765
            session: Optional requests session (a pooled keep-alive session by default)
            sleep: Function used to wait between retries
        """
        self.url = url
        self._sleep = sleep
        self._consecutive_failures = 0

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=2, pool_maxsize=5)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    @property
    def consecutive_failures(self) -> int:
        """Number of failed attempts since the last answered request."""
        return self._consecutive_failures

    def reset_backoff(self) -> None:
        """Forget previous failures."""
        self._consecutive_failures = 0

    def close(self) -> None:
        """Close pooled connections."""
        self._session.close()

    def invoke(
        self,
        action: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
        max_retries: int = MAX_RETRIES,
    ) -> Any:
        """Call an AnkiConnect action.

        Args:
            action: AnkiConnect action name
            params: Action parameters
            timeout: Request timeout in seconds (10s, or 30s for media uploads)
            max_retries: Number of retries for retryable failures

        Returns:
            The "result" member of the response

        Raises:
            AnkiConnectApiError: If Anki reports an error (never retried)
            AnkiConnectionError: If AnkiConnect cannot be reached
        """
        if timeout is None:
            timeout = MEDIA_UPLOAD_TIMEOUT if action == MEDIA_UPLOAD_ACTION else DEFAULT_TIMEOUT

        payload = {"action": action, "version": ANKICONNECT_VERSION, "params": params or {}}
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay = backoff_delay(attempt)
                logger.info(
                    f"AnkiConnect retry {attempt}/{max_retries} after {delay * 1000:.0f}ms delay"
                )
                self._sleep(delay)

            try:
                response = self._session.post(self.url, json=payload, timeout=timeout)
            except (requests.RequestException, OSError) as e:
                last_error = e
                self._consecutive_failures += 1
                self._log_failure(action, e)
                if not is_retryable_error(e) or attempt == max_retries:
                    raise AnkiConnectionError(
                        f"AnkiConnect request '{action}' failed: {e}"
                    ) from e
                continue

            self._consecutive_failures = 0
            return self._parse_response(action, response)

        raise AnkiConnectionError(f"AnkiConnect request '{action}' failed: {last_error}")

    def _parse_response(self, action: str, response: requests.Response) -> Any:
        """Extract the result from an AnkiConnect response body."""
        try:
            body = response.json()
        except ValueError as e:
            raise AnkiConnectApiError(
                f"Invalid response from AnkiConnect (HTTP {response.status_code})", action
            ) from e

        if not isinstance(body, dict):
            raise AnkiConnectApiError("Unexpected response format from AnkiConnect", action)

        error = body.get("error")
        if error:
            logger.debug(f"AnkiConnect '{action}' returned error: {error}")
            raise AnkiConnectApiError(str(error), action)

        return body.get("result")

    def _log_failure(self, action: str, error: Exception) -> None:
        """Log a failed request unless the log is already flooded."""
        if self._consecutive_failures < MAX_LOGGED_FAILURES:
            logger.error(
                f"AnkiConnect error on '{action}' "
                f"(failure {self._consecutive_failures}/{MAX_LOGGED_FAILURES}): {error}"
            )
        elif self._consecutive_failures == MAX_LOGGED_FAILURES:
            logger.error("AnkiConnect: too many consecutive failures, suppressing further error logs")

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    def version(self) -> int:
        """Get the AnkiConnect API version (useful as a ping)."""
        return int(self.invoke("version", timeout=5.0, max_retries=0))

    def find_notes(self, query: str, max_retries: int = MAX_RETRIES) -> list[int]:
        """Search for notes and return their ids."""
        result = self.invoke("findNotes", {"query": query}, max_retries=max_retries)
        return [int(note_id) for note_id in result or []]

    def notes_info(self, note_ids: list[int]) -> list[NoteInfo]:
        """Fetch field values for notes.

        Notes that no longer exist come back from AnkiConnect as empty
        objects and are left out.
        """
        result = self.invoke("notesInfo", {"notes": list(note_ids)})
        return [NoteInfo.from_anki(entry) for entry in result or [] if entry]

    def note_info(self, note_id: int) -> NoteInfo | None:
        """Fetch a single note, or None if it does not exist."""
        notes = self.notes_info([note_id])
        return notes[0] if notes else None

    def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        """Overwrite some fields of a note."""
        self.invoke("updateNoteFields", {"note": {"id": note_id, "fields": fields}})

    def add_note(
        self,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str] | None = None,
    ) -> int:
        """Create a note and return its id."""
        result = self.invoke(
            "addNote",
            {
                "note": {
                    "deckName": deck_name,
                    "modelName": model_name,
                    "fields": fields,
                    "tags": tags or [],
                    "options": {"allowDuplicate": True},
                }
            },
        )
        if result is None:
            raise AnkiConnectApiError("AnkiConnect did not return a note id", "addNote")
        return int(result)

    def delete_notes(self, note_ids: list[int]) -> None:
        """Delete notes (and their cards)."""
        self.invoke("deleteNotes", {"notes": list(note_ids)})

    def store_media_file(self, filename: str, data: bytes) -> None:
        """Upload a file into Anki's media folder."""
        data_b64 = base64.b64encode(data).decode("utf-8")
        logger.info(f"Uploading media file: {filename} ({round(len(data_b64) / 1024)}KB)")
        self.invoke(MEDIA_UPLOAD_ACTION, {"filename": filename, "data": data_b64})

    def retrieve_media_file(self, filename: str) -> str:
        """Download a media file as base64 ("" if it does not exist)."""
        result = self.invoke("retrieveMediaFile", {"filename": filename})
        return result or ""

    def deck_names(self) -> list[str]:
        """List all deck names."""
        return list(self.invoke("deckNames") or [])

    def model_names(self) -> list[str]:
        """List all note type names."""
        return list(self.invoke("modelNames") or [])
