"""Console and JSON renderings of record collections."""

from __future__ import annotations

import json
from typing import Any

from PrimoSearch.backend.records import RecordCollection


def render_text(collection: RecordCollection, *, offset: int = 0, max_facet_values: int = 5) -> str:
    """Render a record collection into a human-readable text block."""
    lines: list[str] = [f"Total: {collection.total}"]
    if collection.error:
        lines.append(f"Error: {collection.error}")
    lines.append("")

    for idx, record in enumerate(collection, start=offset + 1):
        doc = record.fields
        lines.append(f"{idx}. {doc.title or '-'}  [{doc.recordid}]")
        if doc.creator:
            lines.append(f"   Authors: {'; '.join(doc.creator)}")
        if doc.format:
            lines.append(f"   Format: {', '.join(doc.format)}")
        if doc.ispartof:
            lines.append(f"   In: {doc.ispartof}")
        if doc.doi_str_mv:
            lines.append(f"   DOI: {', '.join(doc.doi_str_mv)}")
        if doc.url:
            lines.append(f"   URL: {doc.url}")
        lines.append("")

    for name, values in collection.facets.items():
        shown = list(values.items())[:max_facet_values]
        rendered = ", ".join(f"{value} ({'selected' if count is None else count})" for value, count in shown)
        lines.append(f"Facet {name}: {rendered}")

    if collection.did_you_mean:
        lines.append(f"Did you mean: {', '.join(collection.did_you_mean)}")
    return "\n".join(lines).rstrip() + "\n"


def collection_to_dict(collection: RecordCollection) -> dict[str, Any]:
    return {
        "source": collection.source_identifier,
        "total": collection.total,
        "error": collection.error,
        "records": [record.fields.to_dict() for record in collection],
        "facets": {name: dict(values) for name, values in collection.facets.items()},
        "didYouMean": list(collection.did_you_mean),
    }


def render_json(collection: RecordCollection) -> str:
    return json.dumps(collection_to_dict(collection), ensure_ascii=False, indent=2)
