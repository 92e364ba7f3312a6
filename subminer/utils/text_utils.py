"""Text processing utilities."""

import re

_OVERRIDE_BLOCK = re.compile(r"\{[^}]*\}")
_LINE_BREAK_ESCAPE = re.compile(r"\\[nN]")
_HTML_TAG = re.compile(r"<[^>]*>")
_HIGHLIGHT = re.compile(r"<b>(.*?)</b>", re.DOTALL)


def normalize_subtitle_key(text: str) -> str:
    """Normalize subtitle text into a single-line lookup key.

    Removes ASS override blocks like {\\an8}, turns \\N, \\n and real line
    breaks into spaces, and collapses whitespace.

    Args:
        text: Raw subtitle text from the player

    Returns:
        Normalized key (empty if the line has no visible text)
    """
    text = _LINE_BREAK_ESCAPE.sub(" ", text)
    text = text.replace("\n", " ")
    text = _OVERRIDE_BLOCK.sub("", text)
    return " ".join(text.split())


def normalize_subtitle_display(text: str) -> str:
    """Normalize subtitle text for display, keeping line breaks.

    Args:
        text: Raw subtitle text from the player

    Returns:
        Text with override blocks removed and one line per subtitle line
    """
    text = _OVERRIDE_BLOCK.sub("", text)
    text = _LINE_BREAK_ESCAPE.sub("\n", text)
    lines = (" ".join(line.split()) for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return " ".join(text.split())


def strip_html(text: str) -> str:
    """Remove HTML tags from a field value."""
    return _HTML_TAG.sub("", text)


def truncate_sentence(sentence: str, limit: int = 100) -> str:
    """Strip HTML and shorten a sentence for previews.

    Args:
        sentence: Field value, possibly containing HTML
        limit: Maximum number of characters to keep

    Returns:
        Plain text, with "..." appended when it was shortened
    """
    clean = strip_html(sentence).strip()
    if len(clean) <= limit:
        return clean
    return clean[:limit] + "..."


def edit_distance(a: str, b: str) -> int:
    """Compute the Levenshtein distance between two strings.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character insertions, deletions and
        substitutions turning a into b
    """
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Similarity ratio in [0, 1] based on edit distance.

    Two empty strings are considered identical.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


def highlight_sentence(sentence: str, existing_sentence: str) -> str:
    """Carry the <b> highlight of an existing sentence over to a new one.

    Dictionary popups mark the looked-up word with <b>...</b>. When the same
    text appears in the subtitle sentence, the first occurrence is wrapped
    the same way.

    Args:
        sentence: Sentence taken from the player
        existing_sentence: Current value of the note's sentence field

    Returns:
        The sentence, highlighted when the marked word could be found
    """
    match = _HIGHLIGHT.search(existing_sentence)
    if not match or not match.group(1):
        return sentence

    highlighted = match.group(1)
    index = sentence.find(highlighted)
    if index == -1:
        return sentence

    end = index + len(highlighted)
    return f"{sentence[:index]}<b>{highlighted}</b>{sentence[end:]}"


def katakana_to_hiragana(text: str) -> str:
    """Convert katakana characters to hiragana.

    Args:
        text: Text potentially containing katakana

    Returns:
        Text with katakana converted to hiragana
    """
    result = []
    for ch in text:
        if "\u30a1" <= ch <= "\u30f6":
            result.append(chr(ord(ch) - 0x60))
        else:
            result.append(ch)
    return "".join(result)


def generate_furigana(text: str, tagger) -> str:
    """Generate furigana-annotated text using MeCab tokenization.

    Tokenizes the text and adds bracketed readings to kanji-containing tokens.
    Uses the standard Anki furigana format: kanji[reading].

    Args:
        text: Japanese text to annotate
        tagger: A fugashi.Tagger instance

    Returns:
        Furigana-annotated string, e.g. "王国[おうこく]です。"
    """
    result = []
    for token in tagger(text):
        surface = token.surface
        has_kanji = any("\u4e00" <= c <= "\u9fff" for c in surface)
        if not has_kanji:
            result.append(surface)
            continue
        try:
            kana = token.feature.kana
            if not kana:
                result.append(surface)
                continue
        except AttributeError:
            result.append(surface)
            continue
        hiragana = katakana_to_hiragana(kana)
        if hiragana == surface:
            result.append(surface)
        else:
            # Space separator before furigana only if preceded by another token
            prefix = " " if result else ""
            result.append(f"{prefix}{surface}[{hiragana}]")
    return "".join(result)
