"""
Convert an assistant-written implementation plan into task entries.

Two input shapes are accepted:

- a JSON array of task objects (``{"title": ..., "description": ...,
  "subtasks": [...]}``), passed through as-is;
- plain text with numbered sections separated by blank lines::

      1. Design schema
      Draw the ERD and agree on table names.

      2. Write migrations
      ...
"""

import json
import re
from typing import Any, Dict, List

# Split on a blank line that is followed by "<number>."
_SECTION_SPLIT = re.compile(r"\n\s*\n(?=\s*\d+\.)")
_NUMBERED_TITLE = re.compile(r"^\d+\.\s+")


def _parse_section(section: str) -> Dict[str, Any]:
    lines = section.strip().split("\n")
    title = _NUMBERED_TITLE.sub("", lines[0]).strip()
    description = "\n".join(lines[1:]).strip()
    return {"title": title, "description": description or title}


def parse_plan_text(text: str) -> List[Dict[str, Any]]:
    """
    Parse plan text into a list of task entries.

    Returns:
        Entries with at least ``title`` and ``description``. A JSON value
        that is not an array yields an empty list, as does text without
        numbered sections. A section without a body uses its title as the
        description.
    """
    if not text or not text.strip():
        return []

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(parsed, list):
            return [item for item in parsed if isinstance(item, dict)]
        return []

    sections = _SECTION_SPLIT.split(text.strip())
    entries = [
        _parse_section(section)
        for section in sections
        if _NUMBERED_TITLE.match(section.strip())
    ]
    return [entry for entry in entries if entry["title"]]
