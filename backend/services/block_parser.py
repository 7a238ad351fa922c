"""
Block Parser - Split an answer into markdown and code blocks for rendering

Blocks are never stored: they are re-derived from the full answer text on
every render, so a longer prefix of the same text only ever extends or
splits the last block.
"""

from __future__ import annotations

import re

from models.chat import CodeBlock, MarkdownBlock, ResponseBlock
from services.tag_normalizer import normalize_tags

DEFAULT_LANGUAGE = "javascript"

CODE_SPAN_PATTERN = re.compile(
    r"<code-editor(?:\s+(?:lang|language)=\"([^\"]+)\")?\s*>(.*?)</code-editor>",
    re.IGNORECASE | re.DOTALL,
)

# &amp; must come after &lt;/&gt; so "&amp;lt;" decodes once, to "&lt;"
HTML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def decode_code_content(content: str | None) -> str:
    """Decode the raw content of a code span"""
    if not content:
        return ""
    decoded = content.replace("\r\n", "\n").replace("\r", "\n")
    decoded = decoded.replace("\\n", "\n").replace("\\t", "\t")
    for entity, char in HTML_ENTITIES:
        decoded = decoded.replace(entity, char)
    return decoded


def segment_blocks(text: str) -> list[ResponseBlock]:
    """Scan normalized text left to right into markdown and code blocks.

    An opening tag without its closing tag is not matched, so it stays in
    the trailing markdown block until the rest of the span arrives.
    """
    blocks: list[ResponseBlock] = []
    last_index = 0

    for match in CODE_SPAN_PATTERN.finditer(text):
        start, end = match.span()
        if start > last_index:
            blocks.append(MarkdownBlock(text=text[last_index:start]))

        lang, raw_content = match.groups()
        blocks.append(
            CodeBlock(
                language=(lang or DEFAULT_LANGUAGE).lower(),
                content=decode_code_content(raw_content),
            )
        )
        last_index = end

    if last_index < len(text):
        blocks.append(MarkdownBlock(text=text[last_index:]))

    return blocks


def parse_response_blocks(answer_text: str | None) -> list[ResponseBlock]:
    """Normalize, segment and decode the full answer text"""
    if not answer_text:
        return []
    return segment_blocks(normalize_tags(answer_text))
