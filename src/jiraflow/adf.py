"""Atlassian Document Format -> plain text."""

from __future__ import annotations

from typing import Any


def _node_text(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "text":
        return str(node.get("text") or "")
    if node.get("type") == "hardBreak":
        return "\n"
    content = node.get("content")
    if isinstance(content, list):
        return "".join(_node_text(child) for child in content)
    return ""


def _block_text(block: Any) -> str:
    if not isinstance(block, dict):
        return ""
    kind = block.get("type")
    if kind in ("bulletList", "orderedList"):
        items = block.get("content") or []
        rendered = []
        for index, item in enumerate(items, start=1):
            marker = f"{index}. " if kind == "orderedList" else "- "
            rendered.append(marker + _node_text(item))
        return "\n".join(rendered) + "\n"
    text = _node_text(block)
    if kind in ("paragraph", "heading"):
        return text + "\n"
    if kind == "codeBlock":
        return "```\n" + text + "\n```\n"
    return text


def adf_to_text(document: Any) -> str:
    if not isinstance(document, dict):
        return document if isinstance(document, str) else ""
    content = document.get("content")
    if not isinstance(content, list):
        return ""
    return "".join(_block_text(block) for block in content).strip()


__all__ = ["adf_to_text"]
