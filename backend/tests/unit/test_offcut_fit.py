"""
Unit Tests for the Offcut Fit Scorer

Pure functions, no database:
1. Fit class selection (dimensional, area with margin, risky area, no match)
2. Score modifiers (GOOD condition bonus, size tie-break)
3. Custom rule lists
"""
import pytest

from app.services.offcut_fit import (
    FIT_AREA_RISKY,
    FIT_AREA_SUFFICIENT,
    FIT_EXACT,
    FIT_ROTATED,
    FitCandidate,
    FitRequirement,
    FitRule,
    score_fit,
    size_tiebreak,
)

TIEBREAK = 1_000_000_000


class TestFitClasses:

    @pytest.mark.unit
    def test_exact_size_fit(self):
        result = score_fit(
            FitRequirement(width_mm=100, height_mm=50),
            FitCandidate(width_mm=110, height_mm=60, area_mm2=6600, condition="GOOD"),
        )
        assert result.fit_reason == FIT_EXACT
        assert result.rule == "dimensional"
        assert result.score == 100 + 10 + (TIEBREAK - 6600)

    @pytest.mark.unit
    def test_rotated_fit(self):
        """Fails straight (55 < 100) but passes rotated."""
        result = score_fit(
            FitRequirement(width_mm=100, height_mm=50),
            FitCandidate(width_mm=55, height_mm=105, area_mm2=5775, condition="OK"),
        )
        assert result.fit_reason == FIT_ROTATED
        assert result.score == 100 + (TIEBREAK - 5775)

    @pytest.mark.unit
    def test_acrylic_area_below_margin_is_risky(self):
        """10000 * 1.15 = 11500 > 11000, so only the bare-area class matches."""
        result = score_fit(
            FitRequirement(area_mm2=10000, safety_margin=0.15),
            FitCandidate(area_mm2=11000, condition="OK"),
        )
        assert result.fit_reason == FIT_AREA_RISKY
        assert result.score == 30 + (TIEBREAK - 11000)

    @pytest.mark.unit
    def test_area_above_margin_is_sufficient(self):
        result = score_fit(
            FitRequirement(area_mm2=10000, safety_margin=0.15),
            FitCandidate(area_mm2=11600, condition="GOOD"),
        )
        assert result.fit_reason == FIT_AREA_SUFFICIENT
        assert result.score == 60 + 10 + (TIEBREAK - 11600)

    @pytest.mark.unit
    def test_too_small_dimensions_fall_through_to_area(self):
        """A candidate too narrow both ways can still match on area."""
        result = score_fit(
            FitRequirement(width_mm=100, height_mm=100, area_mm2=10000, safety_margin=0.10),
            FitCandidate(width_mm=90, height_mm=200, area_mm2=18000),
        )
        assert result.fit_reason == FIT_AREA_SUFFICIENT

    @pytest.mark.unit
    def test_no_match_returns_none(self):
        assert score_fit(
            FitRequirement(width_mm=100, height_mm=50, area_mm2=5000),
            FitCandidate(width_mm=40, height_mm=40, area_mm2=1600),
        ) is None

    @pytest.mark.unit
    def test_unknown_requirement_matches_nothing(self):
        assert score_fit(FitRequirement(), FitCandidate(width_mm=500, height_mm=500, area_mm2=250000)) is None

    @pytest.mark.unit
    def test_candidate_without_dimensions_skips_dimensional_rule(self):
        result = score_fit(
            FitRequirement(width_mm=100, height_mm=50, area_mm2=5000),
            FitCandidate(area_mm2=6000),
        )
        assert result.fit_reason == FIT_AREA_SUFFICIENT


class TestScoreModifiers:

    @pytest.mark.unit
    def test_good_condition_bonus(self):
        requirement = FitRequirement(width_mm=100, height_mm=50)
        good = score_fit(requirement, FitCandidate(width_mm=200, height_mm=100, area_mm2=20000, condition="GOOD"))
        ok = score_fit(requirement, FitCandidate(width_mm=200, height_mm=100, area_mm2=20000, condition="OK"))
        assert good.score - ok.score == 10

    @pytest.mark.unit
    def test_smaller_offcut_ranks_higher_within_class(self):
        requirement = FitRequirement(width_mm=100, height_mm=50)
        small = score_fit(requirement, FitCandidate(width_mm=120, height_mm=60, area_mm2=7200))
        large = score_fit(requirement, FitCandidate(width_mm=400, height_mm=300, area_mm2=120000))
        assert small.score > large.score

    @pytest.mark.unit
    def test_tiebreak_never_negative(self):
        assert size_tiebreak(5_000, constant=1_000) == 0
        assert size_tiebreak(400, constant=1_000) == 600

    @pytest.mark.unit
    def test_tiebreak_unknown_area(self):
        assert size_tiebreak(None) == 0


class TestRuleList:

    @pytest.mark.unit
    def test_first_matching_rule_wins(self):
        rules = [
            FitRule("always", 5, lambda req, cand: "anything goes"),
            FitRule("never_reached", 500, lambda req, cand: "unreachable"),
        ]
        result = score_fit(FitRequirement(), FitCandidate(area_mm2=None, condition="OK"), rules=rules)
        assert result.fit_reason == "anything goes"
        assert result.score == 5
        assert result.rule == "always"

    @pytest.mark.unit
    def test_margin_property(self):
        assert FitRequirement(area_mm2=10000, safety_margin=0.15).area_with_margin == pytest.approx(11500)
        assert FitRequirement(safety_margin=0.15).area_with_margin is None
