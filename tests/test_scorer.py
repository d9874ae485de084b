import pytest

from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.core.scorer import RubricScorer
from prompt_evolution.core.types import Criterion, PredicateCheck, pattern_check


def clarity_rubric() -> list[Criterion]:
    return [
        Criterion(
            name="clarity",
            weight=1.0,
            checks=(pattern_check("no-vague-improve", r"improve", absent=True),),
        )
    ]


class TestRubricScorer:
    def test_banned_phrase_present_scores_one(self):
        result = RubricScorer(clarity_rubric()).score("We will improve throughput.")
        assert result.per_criterion["clarity"] == 1.0
        assert result.overall == 1.0
        assert result.detail["clarity"][0].passed is False

    def test_banned_phrase_absent_scores_five(self):
        result = RubricScorer(clarity_rubric()).score(
            "We will increase throughput from 100 to 150 req/s."
        )
        assert result.per_criterion["clarity"] == 5.0
        assert result.overall == 5.0
        assert result.detail["clarity"][0].passed is True

    def test_partial_pass_is_linear(self):
        criteria = [
            Criterion(
                name="coverage",
                weight=1.0,
                checks=(
                    pattern_check("a", r"alpha"),
                    pattern_check("b", r"beta"),
                    pattern_check("c", r"gamma"),
                    pattern_check("d", r"delta"),
                ),
            )
        ]
        result = RubricScorer(criteria).score("alpha beta")
        assert result.per_criterion["coverage"] == pytest.approx(3.0)

    def test_overall_is_weighted_mean(self):
        criteria = [
            Criterion(name="heavy", weight=3.0, checks=(pattern_check("x", r"x"),)),
            Criterion(name="light", weight=1.0, checks=(pattern_check("y", r"y"),)),
        ]
        result = RubricScorer(criteria).score("x")
        # heavy = 5, light = 1
        assert result.overall == pytest.approx((5 * 3 + 1 * 1) / 4)

    def test_patterns_are_case_insensitive(self):
        result = RubricScorer(clarity_rubric()).score("We will IMPROVE throughput.")
        assert result.overall == 1.0

    def test_predicate_check(self):
        criteria = [
            Criterion(
                name="length",
                weight=1.0,
                checks=(PredicateCheck("short", lambda text: len(text.split()) <= 3),),
            )
        ]
        scorer = RubricScorer(criteria)
        assert scorer.score("three words here").overall == 5.0
        assert scorer.score("this one has five words").overall == 1.0

    def test_raising_predicate_counts_as_failed(self):
        def broken(text: str) -> bool:
            raise RuntimeError("boom")

        criteria = [
            Criterion(
                name="mixed",
                weight=1.0,
                checks=(PredicateCheck("broken", broken), pattern_check("ok", r"ok")),
            )
        ]
        result = RubricScorer(criteria).score("ok")
        assert result.per_criterion["mixed"] == pytest.approx(3.0)
        assert [o.passed for o in result.detail["mixed"]] == [False, True]

    def test_scoring_is_deterministic(self):
        scorer = RubricScorer(clarity_rubric())
        doc = "We will improve throughput."
        assert scorer.score(doc) == scorer.score(doc)

    @pytest.mark.parametrize(
        "document",
        ["", "improve", "x" * 5000, "We will increase throughput from 100 to 150 req/s."],
    )
    def test_scores_stay_in_bounds(self, document):
        criteria = [
            *clarity_rubric(),
            Criterion(
                name="numbers",
                weight=0.5,
                checks=(pattern_check("has-number", r"\d+"), pattern_check("has-unit", r"req/s")),
            ),
        ]
        result = RubricScorer(criteria).score(document)
        for value in result.per_criterion.values():
            assert 1.0 <= value <= 5.0
        assert 1.0 <= result.overall <= 5.0


class TestRubricValidation:
    def test_empty_rubric(self):
        with pytest.raises(ConfigurationError, match="no criteria"):
            RubricScorer([])

    def test_criterion_without_checks(self):
        with pytest.raises(ConfigurationError, match="no checks"):
            RubricScorer([Criterion(name="empty", weight=1.0, checks=())])

    def test_duplicate_criterion_names(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            RubricScorer([*clarity_rubric(), *clarity_rubric()])

    @pytest.mark.parametrize("weight", [0.0, -1.0, float("nan"), float("inf")])
    def test_non_normalizable_weight(self, weight):
        with pytest.raises(ConfigurationError, match="weight"):
            RubricScorer(
                [Criterion(name="w", weight=weight, checks=(pattern_check("x", r"x"),))]
            )
