"""Parser and serializer for grouped field values.

Kiku-style note types keep the sentences, audio and pictures of merged
duplicate cards side by side in one field. Each piece carries the id of the
note it came from:

    <span data-group-id="1712345">彼は<b>走った</b>。</span><br><span data-group-id="1712399">...</span>
    <img data-group-id="1712345" src="image_1712345.jpg">

Content outside any grouped tag belongs to a fallback group chosen by the
caller, which lets values written before grouping existed be migrated on
their first merge.
"""

import re
from dataclasses import dataclass, field

from subminer.models import (
    FieldRole,
    GroupedFragment,
    MalformedFragment,
    MalformedReason,
    ParsedField,
)

GROUP_ATTRIBUTE = "data-group-id"
TEXT_SEPARATOR = "<br>"

_TAG_NAME = re.compile(r"[A-Za-z][A-Za-z0-9:-]*")
_ATTRIBUTE_NAME = re.compile(r"[^\s=>/\"']+")
_UNQUOTED_VALUE = re.compile(r"[^\s>]+")
_EDGE_BREAKS = re.compile(r"^(?:\s|<br\s*/?>)+|(?:\s|<br\s*/?>)+$", re.IGNORECASE)
_SOUND_REFERENCE = re.compile(r"\[sound:[^\]]+\]")


@dataclass
class _Tag:
    """An HTML tag found by the scanner."""

    name: str
    start: int
    end: int
    closing: bool = False
    self_closing: bool = False
    attributes: list[tuple[str, str | None]] = field(default_factory=list)

    def attribute(self, name: str) -> str | None:
        for attr_name, value in self.attributes:
            if attr_name == name:
                return value if value is not None else ""
        return None

    def has_attribute(self, name: str) -> bool:
        return any(attr_name == name for attr_name, _ in self.attributes)


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _scan_tag(text: str, pos: int) -> _Tag | None:
    """Parse the tag starting at text[pos] == "<".

    Returns None when the "<" does not start a well-formed tag (for example
    a literal less-than sign in a sentence).
    """
    i = pos + 1
    closing = False
    if i < len(text) and text[i] == "/":
        closing = True
        i += 1

    name_match = _TAG_NAME.match(text, i)
    if not name_match:
        return None
    tag = _Tag(name=name_match.group().lower(), start=pos, end=pos, closing=closing)
    i = name_match.end()

    while True:
        i = _skip_whitespace(text, i)
        if i >= len(text):
            return None
        if text[i] == ">":
            tag.end = i + 1
            return tag
        if text.startswith("/>", i):
            tag.self_closing = True
            tag.end = i + 2
            return tag

        attr_match = _ATTRIBUTE_NAME.match(text, i)
        if not attr_match:
            # Stray quote or slash; skip it
            i += 1
            continue
        attr_name = attr_match.group().lower()
        i = _skip_whitespace(text, attr_match.end())

        value: str | None = None
        if i < len(text) and text[i] == "=":
            i = _skip_whitespace(text, i + 1)
            if i >= len(text):
                return None
            if text[i] in "\"'":
                quote = text[i]
                close = text.find(quote, i + 1)
                if close == -1:
                    return None
                value = text[i + 1 : close]
                i = close + 1
            else:
                value_match = _UNQUOTED_VALUE.match(text, i)
                value = value_match.group() if value_match else ""
                i = value_match.end() if value_match else i
        tag.attributes.append((attr_name, value))


def _find_span_close(text: str, pos: int) -> tuple[int, int]:
    """Find the </span> matching a span opened before pos.

    Returns:
        (start, end) of the closing tag, or (len, len) if it is missing
    """
    depth = 1
    while True:
        lt = text.find("<", pos)
        if lt == -1:
            return len(text), len(text)
        tag = _scan_tag(text, lt)
        if tag is None:
            pos = lt + 1
            continue
        if tag.name == "span":
            if tag.closing:
                depth -= 1
                if depth == 0:
                    return lt, tag.end
            elif not tag.self_closing:
                depth += 1
        pos = tag.end


def _serialize_img(tag: _Tag) -> str:
    """Write an img tag back out without its group attribute."""
    parts = ["<img"]
    for name, value in tag.attributes:
        if name == GROUP_ATTRIBUTE:
            continue
        if value is None:
            parts.append(f" {name}")
        elif '"' in value:
            parts.append(f" {name}='{value}'")
        else:
            parts.append(f' {name}="{value}"')
    parts.append(">")
    return "".join(parts)


def _find_img_tags(text: str) -> list[_Tag]:
    tags = []
    pos = 0
    while True:
        lt = text.find("<", pos)
        if lt == -1:
            return tags
        tag = _scan_tag(text, lt)
        if tag is None:
            pos = lt + 1
            continue
        if tag.name == "img" and not tag.closing:
            tags.append(tag)
        pos = tag.end


def _trim(text: str) -> str:
    """Strip whitespace and <br> separators from both ends."""
    return _EDGE_BREAKS.sub("", text)


def is_blank(value: str) -> bool:
    """Check if a field value holds nothing but whitespace and <br> tags."""
    return not _trim(value)


def _read_group_id(raw: str | None) -> tuple[int, MalformedReason | None]:
    if raw is None or not raw.strip():
        return 0, MalformedReason.MISSING_ID
    try:
        group_id = int(raw.strip())
    except ValueError:
        return 0, MalformedReason.NON_NUMERIC_ID
    if group_id <= 0:
        return group_id, MalformedReason.NON_POSITIVE_ID
    return group_id, None


def _latest_media_reference(content: str, role: FieldRole) -> str:
    """Keep only the last [sound:] or <img> reference of a fragment."""
    if role is FieldRole.AUDIO:
        references = _SOUND_REFERENCE.findall(content)
        return references[-1] if references else content
    if role is FieldRole.IMAGE:
        images = _find_img_tags(content)
        return _serialize_img(images[-1]) if images else content
    return content


def _latest_per_group(fragments: list[GroupedFragment]) -> list[GroupedFragment]:
    """Keep one fragment per group: the last one, at the group's first position."""
    order: list[int] = []
    latest: dict[int, GroupedFragment] = {}
    for fragment in fragments:
        if fragment.group_id not in latest:
            order.append(fragment.group_id)
        latest[fragment.group_id] = fragment
    return [latest[group_id] for group_id in order]


def parse_grouped_value(
    value: str, fallback_id: int, role: FieldRole = FieldRole.TEXT
) -> ParsedField:
    """Split a field value into attributed fragments.

    Args:
        value: Raw field value
        fallback_id: Group id for content outside any grouped tag
        role: How the field encodes its fragments

    Returns:
        ParsedField with the well-formed fragments in document order and
        the grouped tags that had to be dropped
    """
    result = ParsedField()
    untagged: list[str] = []

    def flush_untagged() -> None:
        text = _trim("".join(untagged))
        untagged.clear()
        if not text:
            return
        if role.is_media:
            text = _latest_media_reference(text, role)
        result.fragments.append(GroupedFragment(fallback_id, text))

    pos = 0
    while pos < len(value):
        lt = value.find("<", pos)
        if lt == -1:
            untagged.append(value[pos:])
            break
        untagged.append(value[pos:lt])

        tag = _scan_tag(value, lt)
        if tag is None:
            untagged.append("<")
            pos = lt + 1
            continue

        is_group_span = tag.name == "span" and not tag.closing
        is_group_img = tag.name == "img" and role is FieldRole.IMAGE
        if not (is_group_span or is_group_img) or not tag.has_attribute(GROUP_ATTRIBUTE):
            untagged.append(value[lt : tag.end])
            pos = tag.end
            continue

        if is_group_span and not tag.self_closing:
            close_start, close_end = _find_span_close(value, tag.end)
            content = _trim(value[tag.end : close_start])
            raw = value[lt:close_end]
            pos = close_end
        elif is_group_img:
            content = _serialize_img(tag)
            raw = value[lt : tag.end]
            pos = tag.end
        else:
            content = ""
            raw = value[lt : tag.end]
            pos = tag.end

        flush_untagged()

        group_id, reason = _read_group_id(tag.attribute(GROUP_ATTRIBUTE))
        if reason is not None:
            result.malformed.append(MalformedFragment(reason, raw))
            continue
        if role.is_media:
            content = _latest_media_reference(content, role)
        if content:
            result.fragments.append(GroupedFragment(group_id, content))

    flush_untagged()

    if role.is_media:
        result.fragments = _latest_per_group(result.fragments)
    return result


def merge_fragments(
    keep: list[GroupedFragment],
    source: list[GroupedFragment],
    role: FieldRole = FieldRole.TEXT,
) -> list[GroupedFragment]:
    """Union two fragment lists.

    Keep-side fragments come first. Exact (group_id, content) duplicates are
    dropped, which makes merging a value with part of itself a no-op. Media
    roles additionally keep a single reference per group.
    """
    merged: list[GroupedFragment] = []
    seen: set[tuple[int, str]] = set()
    for fragment in [*keep, *source]:
        key = (fragment.group_id, fragment.content)
        if key in seen:
            continue
        seen.add(key)
        merged.append(fragment)

    if role.is_media:
        merged = _latest_per_group(merged)
    return merged


def serialize_fragments(fragments: list[GroupedFragment], role: FieldRole = FieldRole.TEXT) -> str:
    """Write fragments back out as a field value."""
    parts = []
    for fragment in fragments:
        if role is FieldRole.IMAGE and fragment.content.lower().startswith("<img"):
            rest = fragment.content[4:]
            parts.append(f'<img {GROUP_ATTRIBUTE}="{fragment.group_id}"{rest}')
        else:
            parts.append(
                f'<span {GROUP_ATTRIBUTE}="{fragment.group_id}">{fragment.content}</span>'
            )
    separator = "" if role.is_media else TEXT_SEPARATOR
    return separator.join(parts)


def merge_grouped_values(
    keep_value: str,
    source_value: str,
    keep_id: int,
    source_id: int,
    role: FieldRole = FieldRole.TEXT,
) -> str:
    """Merge two grouped field values, dropping malformed fragments.

    Args:
        keep_value: Value on the note that is kept
        source_value: Value on the note being merged in
        keep_id: Fallback group id for untagged content of keep_value
        source_id: Fallback group id for untagged content of source_value
        role: How the field encodes its fragments

    Returns:
        The merged, re-serialized value
    """
    keep = parse_grouped_value(keep_value, keep_id, role)
    source = parse_grouped_value(source_value, source_id, role)
    return serialize_fragments(merge_fragments(keep.fragments, source.fragments, role), role)
