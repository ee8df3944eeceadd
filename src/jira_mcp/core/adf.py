"""Atlassian Document Format helpers.

Jira REST v3 stores descriptions and comment bodies as ADF trees. Tools speak
plain text, so bodies are wrapped on the way in and flattened on the way out.
"""

import re
from typing import Any, Dict, List, Mapping

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def text_to_adf(text: str) -> Dict[str, Any]:
    """Wrap plain text as an ADF document, one paragraph per blank-line block."""
    paragraphs: List[Dict[str, Any]] = []
    for block in text.split("\n\n"):
        content: List[Dict[str, Any]] = []
        for index, line in enumerate(block.split("\n")):
            if index:
                content.append({"type": "hardBreak"})
            if line:
                content.append({"type": "text", "text": line})
        paragraphs.append({"type": "paragraph", "content": content})
    return {"version": 1, "type": "doc", "content": paragraphs}


def _flatten(node: Any) -> str:
    if isinstance(node, str):
        return node
    if not isinstance(node, Mapping):
        return ""

    node_type = node.get("type")
    if node_type == "text":
        return str(node.get("text", ""))
    if node_type == "mention":
        label = str(node.get("attrs", {}).get("text", "")).lstrip("@")
        return f"@{label}"
    if node_type == "hardBreak":
        return "\n"

    inner = "".join(_flatten(child) for child in node.get("content", []) or [])
    if node_type in ("paragraph", "heading", "listItem", "codeBlock"):
        return inner + "\n"
    return inner


def adf_to_text(document: Any) -> str:
    """Flatten an ADF document (or a plain string) to text."""
    if document is None:
        return ""
    return _EXCESS_NEWLINES.sub("\n\n", _flatten(document)).strip()
