"""
Tests for the tag normalizer repair rules.
"""

from services.tag_normalizer import REPAIR_RULES, apply_rule, normalize_tags


def _rule(name):
    return next(rule for rule in REPAIR_RULES if rule.name == name)


class TestRepairRules:
    """Each rule in isolation."""

    def test_rule_order(self):
        assert [rule.name for rule in REPAIR_RULES] == [
            "doubled_open_bracket",
            "doubled_close_bracket",
            "doubled_open_tag_end",
            "long_language_key",
        ]

    def test_doubled_open_bracket(self):
        rule = _rule("doubled_open_bracket")
        assert apply_rule(rule, "<<code-editor>") == "<code-editor>"
        assert apply_rule(rule, "<< CODE-EDITOR>") == "<code-editor>"

    def test_doubled_close_bracket(self):
        rule = _rule("doubled_close_bracket")
        assert apply_rule(rule, "x</code-editor>>") == "x</code-editor>"
        assert apply_rule(rule, "x</ Code-Editor >>") == "x</code-editor>"

    def test_doubled_open_tag_end(self):
        rule = _rule("doubled_open_tag_end")
        assert apply_rule(rule, '<code-editor lang="go">>x') == '<code-editor lang="go">x'

    def test_long_language_key(self):
        rule = _rule("long_language_key")
        assert apply_rule(rule, '<code-editor language="python">') == '<code-editor lang="python">'
        assert apply_rule(rule, '<code-editor LANGUAGE = "python">') == '<code-editor lang="python">'


class TestNormalizeTags:
    """Whole-text normalization."""

    def test_empty_input(self):
        assert normalize_tags("") == ""
        assert normalize_tags(None) == ""

    def test_plain_text_untouched(self):
        text = "Just prose with a <b>tag</b> and 1 >> 0."
        assert normalize_tags(text) == text

    def test_all_repairs_together(self):
        raw = '<<code-editor language="Python">>print(1)</code-editor>>'
        assert normalize_tags(raw) == '<code-editor lang="Python">print(1)</code-editor>'

    def test_language_key_outside_tag_untouched(self):
        """Prose or code that mentions language="..." is not rewritten."""
        text = 'Set <html language="en"> in prose.'
        assert normalize_tags(text) == text

    def test_partial_tag_left_for_later(self):
        """A fragment that cannot match yet is left as-is."""
        assert normalize_tags("before <") == "before <"
        assert normalize_tags("text <code-edi") == "text <code-edi"

    def test_partial_tag_repaired_once_complete(self):
        first = "before <"
        second = first + '<code-editor language="py">'
        assert normalize_tags(second) == 'before <code-editor lang="py">'

    def test_idempotent(self):
        raw = '<<code-editor language="go">>x</code-editor>>'
        once = normalize_tags(raw)
        assert normalize_tags(once) == once
