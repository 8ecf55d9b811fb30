"""Tag Object rules: unique names, existing parents, no parent cycles."""

from __future__ import annotations

from typing import Any

from specgraph.exceptions import SpecValidationError
from specgraph.parser.uris import pointer_join
from specgraph.validation.schemas import check_external_docs


def check_tags(tags: Any, location: str = "/tags") -> None:
    if not isinstance(tags, list) or not tags:
        return
    entries = [tag for tag in tags if isinstance(tag, dict)]

    names: list[str] = []
    duplicates: list[str] = []
    for tag in entries:
        name = tag.get("name")
        if isinstance(name, str):
            if name in names and name not in duplicates:
                duplicates.append(name)
            names.append(name)
    if duplicates:
        raise SpecValidationError(f"Duplicate tag name(s) detected: {', '.join(duplicates)}", location)

    parents: dict[str, str] = {}
    for position, tag in enumerate(entries):
        here = pointer_join(location, position)
        if tag.get("externalDocs"):
            check_external_docs(tag["externalDocs"], pointer_join(here, "externalDocs"))
        parent = tag.get("parent")
        if parent:
            if parent not in names:
                raise SpecValidationError(
                    f"Tag \"{tag.get('name')}\" has parent \"{parent}\" which does not exist in tags array.",
                    pointer_join(here, "parent"),
                )
            parents[tag.get("name")] = parent

    for tag in entries:
        seen: set[str] = set()
        current = tag.get("name")
        while current in parents:
            if current in seen:
                raise SpecValidationError(f"Circular tag parent reference detected at \"{current}\".", location)
            seen.add(current)
            current = parents[current]
