from datetime import date

import pytest

from prompt_evolution.core.scorer import RubricScorer
from prompt_evolution.core.types import (
    Criterion,
    Decision,
    Mutation,
    OptimizationState,
    Round,
    RoundReason,
    pattern_check,
)
from prompt_evolution.logging.report import build_report, format_criterion_name, format_score_report


def make_round(n, name, previous, new, decision, reason, error=None, diminishing=False) -> Round:
    return Round(
        round_number=n,
        mutation=Mutation(name=name, target_criterion="clarity", description=""),
        previous_score=previous,
        new_score=new,
        improvement=(new - previous) if new is not None else 0.0,
        decision=decision,
        reason=reason,
        timestamp="2026-01-01T00:00:00+00:00",
        error=error,
        diminishing=diminishing,
    )


@pytest.fixture
def state() -> OptimizationState:
    s = OptimizationState(baseline_score=3.0, current_score=3.0)
    s = s.advanced(make_round(1, "A", 3.0, 3.2, Decision.KEEP, RoundReason.IMPROVED))
    s = s.advanced(make_round(2, "B", 3.2, 3.1, Decision.DISCARD, RoundReason.NO_IMPROVEMENT))
    s = s.advanced(
        make_round(
            3, "C", 3.2, None, Decision.DISCARD, RoundReason.EDIT_FAILED,
            error="pattern_not_found in a.md: '## Gates' matched nothing",
        )
    )
    return s


class TestBuildReport:
    def test_header_and_summary(self, state):
        report = build_report(state, title="prd templates", generated_on=date(2026, 3, 1))

        assert report.startswith("# Evolutionary Optimization Report: prd templates\n")
        assert "**Date:** 2026-03-01" in report
        assert "**Rounds Completed:** 3" in report
        assert "**Baseline Score:** 3.00/5.0" in report
        assert "**Final Score:** 3.20/5.0" in report
        assert "**Total Improvement:** +0.20 (+6.7%)" in report
        assert "- Kept: 1 mutations" in report
        assert "- Discarded: 2 mutations" in report
        assert "- Success Rate: 33.3%" in report

    def test_discard_reasons(self, state):
        report = build_report(state)
        assert "- did not improve quality: 1" in report
        assert "- edit could not be applied: 1" in report
        assert "generation failed:" not in report

    def test_round_table(self, state):
        report = build_report(state)
        assert "| 1 | A | clarity | 3.00 | 3.20 | +0.20 | KEEP | improved |" in report
        assert "| 2 | B | clarity | 3.20 | 3.10 | -0.10 | DISCARD | no_improvement |" in report
        assert "| 3 | C | clarity | 3.20 | n/a | n/a | DISCARD | edit_failed |" in report

    def test_errors_section(self, state):
        report = build_report(state)
        assert "## Errors" in report
        assert "- Round 3 (C): pattern_not_found in a.md" in report

    def test_diminishing_note(self, state):
        state = state.advanced(
            make_round(4, "D", 3.2, 3.2, Decision.DISCARD, RoundReason.NO_IMPROVEMENT, diminishing=True)
        )
        assert "**Diminishing returns:**" in build_report(state)

    def test_baseline_only(self):
        report = build_report(OptimizationState(baseline_score=3.5, current_score=3.5))
        assert "**Rounds Completed:** 0" in report
        assert "- Success Rate: 0.0%" in report
        assert "## Errors" not in report

    def test_requires_baseline(self):
        with pytest.raises(ValueError):
            build_report(OptimizationState())


class TestScoreReport:
    def test_format_criterion_name(self):
        assert format_criterion_name("engineering_ready") == "Engineering Ready"

    def test_marks_passed_and_failed_checks(self):
        scorer = RubricScorer(
            [
                Criterion(
                    name="engineering_ready",
                    weight=1.0,
                    checks=(
                        pattern_check("No Redis", r"redis", absent=True),
                        pattern_check("Has FR ids", r"FR\d+"),
                    ),
                )
            ]
        )
        text = format_score_report(scorer.score("FR1: users can export reports"), title="PRD")

        assert text.startswith("# PRD Quality Score Report")
        assert "**Overall Score:** 5.00/5.0" in text
        assert "- **Engineering Ready:** 5.00/5.0 (100%)" in text
        assert "- [x] No Redis" in text
        assert "- [x] Has FR ids" in text
