"""
Offcut Fit Scorer - classifies and scores one candidate offcut against one requirement.

Fit classes are an ordered list of rules; the first rule that matches decides
the fit reason and base score:

    1. Dimensional fit  (100)  "Fits exact size" / "Fits rotated"
    2. Area with margin  (60)  "Area likely sufficient"
    3. Bare area         (30)  "Potential risk: irregular shape"

Then:
    +10 when the offcut is in GOOD condition
    +max(0, TIEBREAK - area) so smaller (less wasteful) offcuts rank higher

Usage:
    from app.services.offcut_fit import FitRequirement, FitCandidate, score_fit

    result = score_fit(
        FitRequirement(width_mm=100, height_mm=50, area_mm2=5000, safety_margin=0.10),
        FitCandidate.from_offcut(offcut),
    )
    if result:
        print(result.fit_reason, result.score)
"""
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional

from app.core.offcut_config import OffcutCondition
from app.core.settings import settings

FIT_EXACT = "Fits exact size"
FIT_ROTATED = "Fits rotated"
FIT_AREA_SUFFICIENT = "Area likely sufficient"
FIT_AREA_RISKY = "Potential risk: irregular shape"

GOOD_CONDITION_BONUS = 10


@dataclass(frozen=True)
class FitRequirement:
    """What a job needs. Any of width/height/area may be unknown."""
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None
    area_mm2: Optional[float] = None
    safety_margin: float = 0.10

    @property
    def area_with_margin(self) -> Optional[float]:
        if not self.area_mm2:
            return None
        return self.area_mm2 * (1 + self.safety_margin)


@dataclass(frozen=True)
class FitCandidate:
    """Effective size of a candidate offcut."""
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None
    area_mm2: Optional[float] = None
    condition: str = OffcutCondition.GOOD.value

    @classmethod
    def from_offcut(cls, offcut) -> "FitCandidate":
        return cls(
            width_mm=offcut.effective_width_mm,
            height_mm=offcut.effective_height_mm,
            area_mm2=offcut.effective_area_mm2,
            condition=offcut.condition,
        )


@dataclass(frozen=True)
class FitResult:
    fit_reason: str
    score: float
    rule: str


class FitRule(NamedTuple):
    """One fit class: check() returns the fit reason, or None when the class does not apply."""
    name: str
    base_score: int
    check: Callable[[FitRequirement, FitCandidate], Optional[str]]


def _check_dimensions(req: FitRequirement, cand: FitCandidate) -> Optional[str]:
    if not (req.width_mm and req.height_mm and cand.width_mm and cand.height_mm):
        return None
    if cand.width_mm >= req.width_mm and cand.height_mm >= req.height_mm:
        return FIT_EXACT
    if cand.width_mm >= req.height_mm and cand.height_mm >= req.width_mm:
        return FIT_ROTATED
    return None


def _check_area_with_margin(req: FitRequirement, cand: FitCandidate) -> Optional[str]:
    threshold = req.area_with_margin
    if threshold and cand.area_mm2 and cand.area_mm2 >= threshold:
        return FIT_AREA_SUFFICIENT
    return None


def _check_bare_area(req: FitRequirement, cand: FitCandidate) -> Optional[str]:
    if req.area_mm2 and cand.area_mm2 and cand.area_mm2 >= req.area_mm2:
        return FIT_AREA_RISKY
    return None


FIT_RULES: List[FitRule] = [
    FitRule("dimensional", 100, _check_dimensions),
    FitRule("area_with_margin", 60, _check_area_with_margin),
    FitRule("area_at_risk", 30, _check_bare_area),
]


def size_tiebreak(area_mm2: Optional[float], constant: Optional[int] = None) -> float:
    """Bonus that grows as the offcut gets smaller. Unknown area gets nothing."""
    if area_mm2 is None:
        return 0
    if constant is None:
        constant = settings.OFFCUT_SCORE_TIEBREAK
    return max(0, constant - area_mm2)


def score_fit(
    requirement: FitRequirement,
    candidate: FitCandidate,
    rules: Optional[List[FitRule]] = None,
) -> Optional[FitResult]:
    """
    Score a candidate against a requirement.

    Returns:
        FitResult, or None when no fit class matches (candidate is excluded)
    """
    for rule in rules or FIT_RULES:
        reason = rule.check(requirement, candidate)
        if reason:
            break
    else:
        return None

    score = rule.base_score
    if candidate.condition == OffcutCondition.GOOD:
        score += GOOD_CONDITION_BONUS
    score += size_tiebreak(candidate.area_mm2)

    return FitResult(fit_reason=reason, score=score, rule=rule.name)
