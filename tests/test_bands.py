"""Tests for band tables and text matching helpers."""

import operator

from stock_intel.utils.bands import clamp, contains_any, step_score

BANDS = ((4, 60), (3, 45), (2, 30), (1, 15))


class TestStepScore:
    """Tests for step_score()."""

    def test_first_matching_band_wins(self) -> None:
        """Test the highest satisfied threshold is used."""
        assert step_score(7, BANDS) == 60
        assert step_score(4, BANDS) == 60
        assert step_score(3, BANDS) == 45
        assert step_score(1, BANDS) == 15

    def test_no_match_returns_default(self) -> None:
        """Test values below every threshold fall through to the default."""
        assert step_score(0, BANDS) is None
        assert step_score(0, BANDS, default=0) == 0

    def test_none_value_returns_default(self) -> None:
        """Test a missing metric never matches a band."""
        assert step_score(None, BANDS, default=10) == 10

    def test_lower_is_better_comparator(self) -> None:
        """Test le comparator for metrics where smaller values score higher."""
        gaps = ((100, 40), (150, 30), (200, 20))
        assert step_score(90, gaps, operator.le, default=10) == 40
        assert step_score(100, gaps, operator.le, default=10) == 40
        assert step_score(120, gaps, operator.le, default=10) == 30
        assert step_score(250, gaps, operator.le, default=10) == 10


class TestClamp:
    """Tests for clamp()."""

    def test_within_range(self) -> None:
        assert clamp(42.5) == 42.5

    def test_clamps_both_ends(self) -> None:
        assert clamp(-3) == 0
        assert clamp(104) == 100
        assert clamp(12, low=20, high=30) == 20


class TestContainsAny:
    """Tests for contains_any()."""

    def test_case_insensitive(self) -> None:
        """Test terms match regardless of case."""
        assert contains_any("Share CONSOLIDATION approved", ["consolidation"])
        assert contains_any("new credit facility", ["Credit Facility"])

    def test_no_match(self) -> None:
        assert not contains_any("Routine disclosure", ["debt", "loan"])

    def test_empty_text(self) -> None:
        """Test missing text never matches."""
        assert not contains_any(None, ["debt"])
        assert not contains_any("", ["debt"])
