"""
Tag Normalizer - Repair near-miss <code-editor> markup in generated answers

The upstream generator sometimes doubles angle brackets or spells the
attribute key out in full. Each repair is a named rule so it can be checked
on its own; rules run in table order, case-insensitively.
"""

from __future__ import annotations

import re
from typing import NamedTuple


class RepairRule(NamedTuple):
    """A single rewrite applied to the whole text"""

    name: str
    pattern: re.Pattern
    replacement: str


REPAIR_RULES: tuple[RepairRule, ...] = (
    RepairRule(
        "doubled_open_bracket",
        re.compile(r"<<\s*code-editor", re.IGNORECASE),
        "<code-editor",
    ),
    RepairRule(
        "doubled_close_bracket",
        re.compile(r"</\s*code-editor\s*>>", re.IGNORECASE),
        "</code-editor>",
    ),
    RepairRule(
        "doubled_open_tag_end",
        re.compile(r"(<code-editor[^>]*?)>>", re.IGNORECASE),
        r"\1>",
    ),
    # Only inside an opening tag, so prose and code mentioning language="..." survive
    RepairRule(
        "long_language_key",
        re.compile(r"(<code-editor\b[^>]*?)\blanguage\s*=\s*\"", re.IGNORECASE),
        r'\1lang="',
    ),
)


def apply_rule(rule: RepairRule, text: str) -> str:
    """Apply one repair rule"""
    return rule.pattern.sub(rule.replacement, text)


def normalize_tags(raw: str | None) -> str:
    """Rewrite raw answer text into canonical <code-editor lang="x"> form.

    Safe on partial text: a fragment that does not match yet is left as-is
    and picked up on a later call once more text has arrived.
    """
    if not raw:
        return ""
    text = str(raw)
    for rule in REPAIR_RULES:
        text = apply_rule(rule, text)
    return text
