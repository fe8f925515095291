"""Best-effort extraction of display names from Jira custom fields.

Multi-version custom fields do not serialize consistently: depending on the
field and the Jira instance, the value may be a list of option objects, a
single option object, a bare string, or text that already went through some
other rendering. Rather than decoding one fixed schema, the extractor walks
whatever structure it is given and scrapes ``name`` entries out of any text
it meets. Anything it cannot make sense of contributes nothing.
"""

from __future__ import annotations

import re
from typing import Any

# name: 4.19.0 / "name": "4.19.0" / 'name'='4.19.0' / name=4.19.0
_NAME_ENTRY = re.compile(
    r"""['"]?\bname['"]?\s*[:=]\s*(?:"([^"]*)"|'([^']*)'|([^\s,'"\]\}\)]+))""",
)


def _scrape_text(text: str) -> list[str]:
    names: list[str] = []
    for match in _NAME_ENTRY.finditer(text):
        value = next((group for group in match.groups() if group is not None), "")
        value = value.strip()
        if value:
            names.append(value)
    return names


def _collect_names(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return _scrape_text(value)
    if isinstance(value, dict):
        names: list[str] = []
        for key, item in value.items():
            if key == "name" and isinstance(item, (str, int, float)) and not isinstance(item, bool):
                text = str(item).strip()
                if text:
                    names.append(text)
            elif isinstance(item, (dict, list, tuple)):
                names.extend(_collect_names(item))
        return names
    if isinstance(value, (list, tuple)):
        names = []
        for item in value:
            names.extend(_collect_names(item))
        return names
    # Unknown object: fall back to its text form
    return _scrape_text(str(value))


def extract_field_names(value: Any) -> str:
    """Join the display names embedded in a custom field value.

    Names are sorted in descending lexicographic order (so "4.9.0" sorts
    above "4.19.0") and joined with ", ".

    Args:
        value: Raw custom field value from the Jira API, in any shape.

    Returns:
        The joined names, or "" if the field is absent or holds no names.
    """
    names = _collect_names(value)
    names.sort(reverse=True)
    return ", ".join(names)
