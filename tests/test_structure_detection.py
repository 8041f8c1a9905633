"""
Structure Detection Tests
=========================
Comment stripping and delimiter scoring.

Run with: python -m pytest tests/test_structure_detection.py -v
Or:       python tests/test_structure_detection.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from thrustbench.structure_detection import (
    MULTI_SPACE,
    count_delimiter,
    delimiter_name,
    detect_delimiter,
    preprocess_content,
    score_delimiter,
)


def create_delimited_text(delimiter, n_rows=5, n_fields=4):
    """Header plus numeric rows with a fixed field count."""
    header = delimiter.join(f"col{i}" for i in range(n_fields))
    rows = [
        delimiter.join(f"{r}.{i}" for i in range(n_fields))
        for r in range(n_rows)
    ]
    return "\n".join([header] + rows)


class TestPreprocessContent:
    """Test comment and empty line removal."""

    def test_removes_comment_lines(self):
        """Lines starting with #, // or * are skipped with a warning each."""
        content = "# Motor: K550\n// operator notes\n* banner\ntime,thrust\n0.0,1.5\n"
        text, warnings = preprocess_content(content)

        assert text == "time,thrust\n0.0,1.5"
        assert len(warnings) == 3
        assert warnings[0] == "Skipped comment line: # Motor: K550..."
        print(f"[PASS] Comment lines skipped: {len(warnings)}")

    def test_long_comment_truncated(self):
        """Warning quotes at most 50 characters of the comment."""
        content = "#" + "x" * 100 + "\na,b\n"
        _, warnings = preprocess_content(content)

        assert warnings[0] == "Skipped comment line: " + ("#" + "x" * 49) + "..."

    def test_removes_empty_lines(self):
        """Empty and whitespace-only lines disappear without warnings."""
        text, warnings = preprocess_content("a,b\n\n   \n1,2\r\n\n3,4")

        assert text == "a,b\n1,2\n3,4"
        assert warnings == []

    def test_indented_comment(self):
        """Leading whitespace before a comment marker still counts as comment."""
        text, warnings = preprocess_content("   # note\na;b\n")

        assert text == "a;b"
        assert len(warnings) == 1


class TestDelimiterDetection:
    """Test delimiter scoring and selection."""

    def test_comma_four_fields(self):
        """Four comma-separated fields per line -> comma."""
        text = "a,b,c,d\n1,2,3,4\n5,6,7,8\n9,10,11,12"
        assert detect_delimiter(text) == ','
        print("[PASS] Comma detected")

    def test_semicolon(self):
        text = create_delimited_text(';')
        assert detect_delimiter(text) == ';'

    def test_tab(self):
        text = create_delimited_text('\t')
        assert detect_delimiter(text) == '\t'

    def test_pipe(self):
        text = create_delimited_text('|')
        assert detect_delimiter(text) == '|'

    def test_multi_space(self):
        """Space-aligned columns -> multi-space sentinel."""
        text = "time  thrust  temp\n0.0  1.5  20.1\n0.1  2.5  20.3"
        assert detect_delimiter(text) == MULTI_SPACE
        assert delimiter_name(MULTI_SPACE) == 'multi-space'

    def test_determinism(self):
        """Same text, same answer on every call."""
        text = "t|v;x\n1|2;3\n4|5;6"
        results = {detect_delimiter(text) for _ in range(10)}
        assert len(results) == 1

    def test_default_comma(self):
        """No candidate present -> comma."""
        assert detect_delimiter("justonecolumn\nvalue\nvalue") == ','
        assert detect_delimiter("") == ','

    def test_consistency_beats_frequency(self):
        """A steady delimiter wins over one that appears erratically."""
        text = "a;b;c\n1;2;3\n4;5;6\nx,y,z,w,v,u;q;r"
        assert detect_delimiter(text) == ';'

    def test_only_first_lines_sampled(self):
        """Lines past the first 10 do not influence detection."""
        head = "\n".join(["a;b;c"] * 10)
        tail = "\n".join(["1,2,3,4,5,6,7,8"] * 50)
        assert detect_delimiter(head + "\n" + tail) == ';'


class TestScoring:
    """Test the scoring primitives."""

    def test_count_multi_space(self):
        assert count_delimiter("a  b    c", MULTI_SPACE) == 2
        assert count_delimiter("a b c", MULTI_SPACE) == 0

    def test_score_zero_when_absent(self):
        assert score_delimiter(["abc", "def"], ',') == 0.0

    def test_score_bonus_for_multiple_fields(self):
        """Mean count >= 2 with perfect consistency scores mean x 1.2."""
        score = score_delimiter(["a,b,c", "1,2,3"], ',')
        assert abs(score - 2.4) < 1e-12

    def test_score_single_field_no_bonus(self):
        assert score_delimiter(["a;b", "1;2"], ';') == 1.0


def run_all_tests():
    """Run all tests and report results."""
    print("=" * 60)
    print("Structure Detection Tests")
    print("=" * 60)

    test_classes = [TestPreprocessContent, TestDelimiterDetection, TestScoring]

    passed = 0
    failed = 0

    for test_class in test_classes:
        print(f"\n{test_class.__name__}")
        print("-" * 40)

        instance = test_class()
        for method_name in [m for m in dir(instance) if m.startswith('test_')]:
            try:
                getattr(instance, method_name)()
                passed += 1
            except Exception as e:
                print(f"[FAIL] {method_name}: {e}")
                failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
