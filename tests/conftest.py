"""Pytest configuration and shared fixtures."""

import pytest

from subminer.config import SubMinerConfig
from subminer.exceptions import AnkiConnectApiError, MediaGenerationError
from subminer.models import NoteInfo
from subminer.presenters import NullPresenter
from subminer.services.anki_connect import escape_query_value

KIKU_FIELDS = [
    "Expression",
    "ExpressionFurigana",
    "ExpressionReading",
    "ExpressionAudio",
    "SelectionText",
    "MainDefinition",
    "Sentence",
    "SentenceFurigana",
    "SentenceAudio",
    "Picture",
    "MiscInfo",
    "IsSentenceCard",
    "IsAudioCard",
    "IsWordAndSentenceCard",
]


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def test_config(temp_dir):
    """Provide a test configuration with temporary paths."""
    return SubMinerConfig(
        anki_deck_name="Mining",
        media_temp_folder=temp_dir / "temp_media",
        misc_info_pattern="%f",
        polling_rate=0.01,
    )


@pytest.fixture
def null_presenter():
    """Provide a null presenter for testing (no output)."""
    return NullPresenter()


@pytest.fixture
def kiku_fields():
    """Field names of a Kiku note type."""
    return list(KIKU_FIELDS)


@pytest.fixture
def make_note():
    """Factory fixture for creating Kiku NoteInfo instances."""

    def _make(note_id, **values):
        fields = {name: "" for name in KIKU_FIELDS}
        fields.update(values)
        return NoteInfo(note_id, fields)

    return _make


class RecordingPresenter:
    """A real PresenterProtocol implementation that records all messages for assertion."""

    def __init__(self):
        self.messages = []

    def show_info(self, message: str) -> None:
        self.messages.append(("info", message))

    def show_success(self, message: str) -> None:
        self.messages.append(("success", message))

    def show_warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def show_error(self, message: str) -> None:
        self.messages.append(("error", message))

    def texts(self, level: str | None = None) -> list[str]:
        return [text for lvl, text in self.messages if level is None or lvl == level]


@pytest.fixture
def recording_presenter():
    """Provide a presenter that records all messages."""
    return RecordingPresenter()


class FakeAnki:
    """In-memory stand-in for AnkiConnectClient.

    Notes added "today" are all notes in the collection. Field searches of
    the form "Expression:<value>" match on the Expression field.
    """

    def __init__(self, model_fields=None):
        self.notes: dict[int, dict[str, str]] = {}
        self.model_fields = list(model_fields or KIKU_FIELDS)
        self.find_error: Exception | None = None
        self.queries: list[str] = []
        self.updates: list[tuple[int, dict[str, str]]] = []
        self.deleted: list[int] = []
        self.added: list[tuple[str, str, dict[str, str]]] = []
        self.media: dict[str, bytes] = {}
        self.next_id = 9000

    def add(self, note_id: int, **values) -> int:
        fields = {name: "" for name in self.model_fields}
        fields.update(values)
        self.notes[note_id] = fields
        return note_id

    def find_notes(self, query: str, max_retries: int = 3) -> list[int]:
        self.queries.append(query)
        if self.find_error is not None:
            raise self.find_error
        if "added:1" in query:
            return sorted(self.notes)
        return sorted(
            note_id
            for note_id, fields in self.notes.items()
            if fields.get("Expression")
            and f"Expression:{escape_query_value(fields['Expression'])}\"" in query
        )

    def notes_info(self, note_ids: list[int]) -> list[NoteInfo]:
        return [NoteInfo(note_id, dict(self.notes[note_id])) for note_id in note_ids if note_id in self.notes]

    def note_info(self, note_id: int) -> NoteInfo | None:
        notes = self.notes_info([note_id])
        return notes[0] if notes else None

    def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        if note_id not in self.notes:
            raise AnkiConnectApiError("note was not found", "updateNoteFields")
        self.updates.append((note_id, dict(fields)))
        self.notes[note_id].update(fields)

    def add_note(self, deck_name, model_name, fields, tags=None) -> int:
        self.next_id += 1
        self.added.append((deck_name, model_name, dict(fields)))
        self.add(self.next_id, **fields)
        return self.next_id

    def delete_notes(self, note_ids: list[int]) -> None:
        for note_id in note_ids:
            self.deleted.append(note_id)
            self.notes.pop(note_id, None)

    def store_media_file(self, filename: str, data: bytes) -> None:
        self.media[filename] = data

    def version(self) -> int:
        return 6

    def deck_names(self) -> list[str]:
        return ["Default", "Mining"]

    def model_names(self) -> list[str]:
        return ["Basic", "Kiku"]

    def close(self) -> None:
        pass


@pytest.fixture
def fake_anki():
    """Provide an in-memory Anki collection."""
    return FakeAnki()


class FakeMediaGenerator:
    """MediaGeneratorProtocol implementation returning canned bytes."""

    def __init__(self):
        self.calls = []
        self.fail_audio = False
        self.fail_image = False
        self.cleaned_up = False

    def generate_audio(self, video_path, start_time, end_time, padding=0.5, audio_stream_index=None):
        self.calls.append(("audio", video_path, start_time, end_time))
        if self.fail_audio:
            raise MediaGenerationError("audio broke")
        return b"mp3-data"

    def generate_screenshot(
        self, video_path, timestamp, image_format="jpg", quality=92, max_width=0, max_height=0
    ):
        self.calls.append(("screenshot", video_path, timestamp))
        if self.fail_image:
            raise MediaGenerationError("image broke")
        return b"jpg-data"

    def generate_animated_image(
        self,
        video_path,
        start_time,
        end_time,
        padding=0.5,
        fps=10,
        max_width=640,
        max_height=0,
        crf=35,
    ):
        self.calls.append(("animated", video_path, start_time, end_time))
        if self.fail_image:
            raise MediaGenerationError("image broke")
        return b"avif-data"

    def cleanup(self):
        self.cleaned_up = True


@pytest.fixture
def fake_media():
    """Provide a media generator that records calls."""
    return FakeMediaGenerator()


class ManualClock:
    """Clock whose time only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a controllable clock."""
    return ManualClock()
