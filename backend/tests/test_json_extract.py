"""
Unit tests for JSON extraction and the repair ladder.
"""
import pytest

from cramify.errors import MalformedResponse
from cramify.json_extract import (
    extract_json,
    find_json_candidate,
    fix_invalid_backslashes,
    strip_code_fences,
)


class TestCandidate:

    def test_noise_around_object(self):
        assert extract_json('noise {"a":1} trailing') == {"a": 1}

    def test_code_fence_is_stripped(self):
        raw = 'Here you go:\n```json\n{"steps": []}\n```'
        assert strip_code_fences(raw) == 'Here you go:\n\n{"steps": []}'
        assert extract_json(raw) == {"steps": []}

    def test_spans_first_to_last_brace(self):
        assert find_json_candidate('x {"a": {"b": 2}} y') == '{"a": {"b": 2}}'

    @pytest.mark.parametrize("raw", ["", "no braces here", "only { opening", "closing } only", "} backwards {"])
    def test_missing_braces_fail(self, raw):
        with pytest.raises(MalformedResponse) as exc:
            extract_json(raw)
        assert "no JSON object found" in str(exc.value)


class TestBackslashRepair:

    def test_invalid_escape_is_doubled(self):
        raw = r'{"a": "line1\nline2 \q"}'
        assert extract_json(raw) == {"a": "line1\nline2 \\q"}

    def test_valid_escapes_untouched(self):
        text = r'"\" \\ \/ \b \f \n \r \t é"'
        assert fix_invalid_backslashes(text) == text

    def test_escaped_backslash_before_letter(self):
        # "\\q" is a valid escaped backslash followed by q
        assert fix_invalid_backslashes(r'"\\q"') == r'"\\q"'

    def test_latex_like_content(self):
        raw = r'{"body": "use \sqrt{x} and \alpha"}'
        assert extract_json(raw) == {"body": "use \\sqrt{x} and \\alpha"}


class TestStructuralRepair:

    def test_trailing_comma(self):
        assert extract_json('{"a": 1, "b": [1, 2,],}') == {"a": 1, "b": [1, 2]}

    def test_strict_parse_preferred(self):
        # Valid JSON must come back exactly as written
        raw = '{"text": "keep   spacing, and commas,"}'
        assert extract_json(raw) == {"text": "keep   spacing, and commas,"}
