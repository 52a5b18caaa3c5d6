"""Plain-text helpers for embedding generation.

Lesson content is stored as a BlockNote block tree. Embeddings are computed
over a flattened, bounded excerpt of it, never over the raw JSON.
"""

import hashlib
import json
from typing import Any

EMBEDDING_TEXT_MAX_CHARS = 1000
EXCERPT_MAX_CHARS = 500


def blocknote_to_text(content: Any) -> str:
    """Flatten a block tree to plain text in document order.

    Accepts either a list of blocks or a {"blocks": [...]} wrapper. Heading
    blocks are prefixed with '#' repeated by their level, blocks are separated
    by blank lines, nested children follow their parent block. Non-text block
    properties are skipped.

    Args:
        content (Any): The stored content value.

    Returns:
        str: The flattened text. Strings pass through, None yields "", any
            other non-block value falls back to its JSON form.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, dict) and isinstance(content.get("blocks"), list):
        blocks = content["blocks"]
    elif isinstance(content, list):
        blocks = content
    elif isinstance(content, dict):
        return json.dumps(content, ensure_ascii=False, sort_keys=True)
    else:
        return str(content)

    parts: list[str] = []
    _collect_block_texts(blocks, parts)
    return "\n\n".join(parts)


def _collect_block_texts(blocks: list, parts: list[str]) -> None:
    for block in blocks:
        if not isinstance(block, dict):
            continue
        text = _block_text(block)
        if text:
            parts.append(text)
        children = block.get("children")
        if isinstance(children, list) and children:
            _collect_block_texts(children, parts)


def _block_text(block: dict) -> str:
    content = block.get("content")
    if isinstance(content, list):
        text = extract_inline_text(content)
    elif isinstance(content, dict) and isinstance(content.get("rows"), list):
        text = _table_text(content["rows"])
    else:
        return ""
    if not text:
        return ""

    props = block.get("props")
    if block.get("type") == "heading" and isinstance(props, dict) and "level" in props:
        try:
            level = int(props["level"])
        except (TypeError, ValueError):
            level = 1
        return "#" * max(level, 1) + " " + text
    return text


def _table_text(rows: list) -> str:
    lines: list[str] = []
    for row in rows:
        cells = row.get("cells", []) if isinstance(row, dict) else []
        cell_texts = []
        for cell in cells:
            # cells are either inline lists or {"content": [...]} objects
            if isinstance(cell, dict):
                cell = cell.get("content", [])
            if isinstance(cell, list):
                cell_texts.append(extract_inline_text(cell))
        line = " | ".join(t for t in cell_texts if t)
        if line:
            lines.append(line)
    return "\n".join(lines)


def extract_inline_text(items: list) -> str:
    """Concatenate the text runs of an inline content list, descending into links."""
    texts: list[str] = []
    for item in items:
        if isinstance(item, str):
            texts.append(item)
        elif isinstance(item, dict):
            if isinstance(item.get("text"), str):
                texts.append(item["text"])
            elif isinstance(item.get("content"), list):
                texts.append(extract_inline_text(item["content"]))
    return "".join(texts)


def build_embedding_text(
    title: str,
    content: Any,
    context_prefix: str | None = None,
    max_chars: int = EMBEDDING_TEXT_MAX_CHARS,
) -> str:
    """Build the bounded text an embedding is computed from.

    The result is "<context_prefix> <title> <flattened content>", empty parts
    dropped, cut to the first max_chars characters.

    Args:
        title (str): Document title.
        content (Any): Stored block tree.
        context_prefix (str | None): Text that biases the embedding to a topic, e.g. the parent plan title.
        max_chars (int): Length of the retained prefix.

    Returns:
        str: The embedding text.
    """
    pieces = [context_prefix or "", title or "", blocknote_to_text(content)]
    text = " ".join(p.strip() for p in pieces if p and p.strip())
    return text[:max_chars]


def build_excerpt(content: Any, max_chars: int = EXCERPT_MAX_CHARS) -> str:
    return blocknote_to_text(content)[:max_chars]


def hash_text(text: str) -> str:
    """SHA-256 hex digest of an embedding text, used for change detection."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
