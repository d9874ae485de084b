from __future__ import annotations

import logging
import math
from typing import Sequence

from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.core.types import (
    CheckOutcome,
    Criterion,
    PatternCheck,
    PredicateCheck,
    ScoreResult,
)

logger = logging.getLogger(__name__)

MIN_SCORE = 1.0
MAX_SCORE = 5.0


class RubricScorer:
    """Weighted multi-criterion rubric.

    Each criterion scores ``1 + 4 * passed / total`` so a criterion never drops
    below 1. The overall score is the weight-normalized mean of those values.
    The rubric is validated once here; ``score`` never raises afterwards.
    """

    def __init__(self, criteria: Sequence[Criterion]) -> None:
        validate_criteria(criteria)
        self.criteria = tuple(criteria)
        self._total_weight = sum(c.weight for c in self.criteria)

    def score(self, document: str) -> ScoreResult:
        per_criterion: dict[str, float] = {}
        detail: dict[str, list[CheckOutcome]] = {}
        weighted_sum = 0.0

        for criterion in self.criteria:
            outcomes = [
                CheckOutcome(name=check.name, passed=_evaluate(check, document))
                for check in criterion.checks
            ]
            passed = sum(1 for o in outcomes if o.passed)
            criterion_score = MIN_SCORE + (MAX_SCORE - MIN_SCORE) * passed / len(outcomes)

            per_criterion[criterion.name] = criterion_score
            detail[criterion.name] = outcomes
            weighted_sum += criterion_score * criterion.weight

        return ScoreResult(
            per_criterion=per_criterion,
            overall=weighted_sum / self._total_weight,
            detail=detail,
        )


def _evaluate(check: PatternCheck | PredicateCheck, document: str) -> bool:
    if isinstance(check, PatternCheck):
        found = check.pattern.search(document) is not None
        return found == check.expect_present
    if isinstance(check, PredicateCheck):
        try:
            return bool(check.predicate(document))
        except Exception:
            logger.warning("Predicate check %r raised; counting as failed", check.name, exc_info=True)
            return False
    raise TypeError(f"Unsupported check type: {type(check).__name__}")


def validate_criteria(criteria: Sequence[Criterion]) -> None:
    if not criteria:
        raise ConfigurationError("Rubric has no criteria")

    seen: set[str] = set()
    for criterion in criteria:
        if criterion.name in seen:
            raise ConfigurationError(f"Duplicate criterion name {criterion.name!r}")
        seen.add(criterion.name)

        if not criterion.checks:
            raise ConfigurationError(f"Criterion {criterion.name!r} has no checks")
        if not math.isfinite(criterion.weight) or criterion.weight <= 0:
            raise ConfigurationError(
                f"Criterion {criterion.name!r} has non-positive weight {criterion.weight}"
            )
        for check in criterion.checks:
            if not isinstance(check, (PatternCheck, PredicateCheck)):
                raise ConfigurationError(
                    f"Criterion {criterion.name!r}: unsupported check {check!r}"
                )
