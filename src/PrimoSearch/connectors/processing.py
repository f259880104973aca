"""Record post-processing shared by both Primo connectors."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, MutableMapping, Sequence

DESCRIPTION_MAX_CHARS = 2500

# Primo field name -> key used in highlight details
HIGHLIGHT_FIELDS: dict[str, str] = {
    "title": "title",
    "creator": "author",
    "description": "description",
}

_HIGHLIGHT_SPAN_RE = re.compile(r"<span[^>]*>([^<]*?)</span>")
_NESTED_SPAN_RE = re.compile(r"<span[^>]*>\s*(<span[^>]*>[^<]*?</span>)\s*</span>")
_TAG_RE = re.compile(r"<[^>]+>")
_UPPER_P_RE = re.compile(r"<(/?)P>")
_NOT_PROCESSED = ("fullrecord", "highlight_details")


def process_highlighting(
    record: MutableMapping[str, Any],
    *,
    highlight: bool,
    start_tag: str = "",
    end_tag: str = "",
    terms: Mapping[str, Sequence[str]] | None = None,
) -> None:
    """Collect highlight details and strip highlight markup from ``record``.

    Primo may return ``<span>`` markup around matched words whether or not
    highlighting was requested, so markup is always stripped. When
    ``highlight`` is set, a copy of title/creator/description with the markup
    replaced by ``start_tag``/``end_tag`` is stored under
    ``record["highlight_details"]``. Fields without inline markup fall back to
    wrapping the words listed in ``terms`` (keyed by Primo field name).
    """
    details: dict[str, list[str]] = {}
    if highlight:
        for primo_field, detail_key in HIGHLIGHT_FIELDS.items():
            values = _as_list(record.get(primo_field))
            if not values:
                continue
            highlighted = [
                marked
                for marked in (_replace_spans(value, start_tag, end_tag) for value in values)
                if marked is not None
            ]
            if not highlighted and terms and terms.get(primo_field):
                highlighted = [_wrap_terms(value, terms[primo_field], start_tag, end_tag) for value in values]
            if highlighted:
                details[detail_key] = highlighted

    for key, value in list(record.items()):
        if key in _NOT_PROCESSED:
            continue
        if isinstance(value, str):
            record[key] = strip_highlighting(value)
        elif isinstance(value, (list, tuple)):
            record[key] = [strip_highlighting(item) if isinstance(item, str) else item for item in value]

    record["highlight_details"] = details


def strip_highlighting(value: str) -> str:
    """Remove highlight spans, keeping their text. Idempotent."""
    while True:
        stripped = _HIGHLIGHT_SPAN_RE.sub(r"\1", value)
        if stripped == value:
            return stripped
        value = stripped


def _replace_spans(value: str, start_tag: str, end_tag: str) -> str | None:
    """Return ``value`` with highlight spans swapped for tags, or None if unmarked."""
    if not _HIGHLIGHT_SPAN_RE.search(value):
        return None
    # double-wrapped spans collapse to the innermost one
    while True:
        collapsed = _NESTED_SPAN_RE.sub(r"\1", value)
        if collapsed == value:
            break
        value = collapsed
    return _HIGHLIGHT_SPAN_RE.sub(lambda m: f"{start_tag}{m.group(1)}{end_tag}", value)


def _wrap_terms(value: str, terms: Sequence[str], start_tag: str, end_tag: str) -> str:
    match = "|".join(re.escape(term) for term in terms if term)
    if not match:
        return value
    pattern = re.compile(rf"(\b|-|–)({match})(\b|-|–)")
    return pattern.sub(lambda m: f"{m.group(1)}{start_tag}{m.group(2)}{end_tag}{m.group(3)}", value)


def process_description(description: str) -> str:
    """Turn a raw description into ``<br>``-joined plain-text paragraphs.

    Only the first 2500 characters are kept since some records carry the
    whole article text.
    """
    description = description[:DESCRIPTION_MAX_CHARS].strip()
    description = _UPPER_P_RE.sub(r"<\1p>", description)
    paragraphs = (strip_tags(paragraph).strip() for paragraph in description.split("<p>"))
    return "<br>".join(paragraph for paragraph in paragraphs if paragraph)


def strip_tags(value: str) -> str:
    return _TAG_RE.sub("", value)


def collect_issns(*groups: Iterable[str]) -> list[str]:
    """Merge ISSN lists in order and drop dash-less duplicates of dashed ISSNs.

    Dash-less values are kept when no dashed form exists, to stay true to
    the metadata.
    """
    merged: list[str] = []
    for group in groups:
        for issn in group:
            value = str(issn)
            if value and value not in merged:
                merged.append(value)
    present = set(merged)
    return [issn for issn in merged if len(issn) != 8 or f"{issn[:4]}-{issn[4:]}" not in present]


def cdi_prefixed(ids: Iterable[str]) -> list[str]:
    """Add the ``cdi_`` prefix citation ids need in searches."""
    return [f"cdi_{value}" for value in ids]


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item]
    return [str(value)]
