from __future__ import annotations

from collections import Counter
from datetime import date

from prompt_evolution.core.types import OptimizationState, RoundReason, ScoreResult

_REASON_LABELS = {
    RoundReason.IMPROVED: "improved quality",
    RoundReason.NO_IMPROVEMENT: "did not improve quality",
    RoundReason.EDIT_FAILED: "edit could not be applied",
    RoundReason.GENERATION_FAILED: "generation failed",
}


def build_report(
    state: OptimizationState, title: str = "templates", generated_on: date | None = None
) -> str:
    """Render the run summary as markdown. Reads ``state`` only."""
    if state.baseline_score is None or state.current_score is None:
        raise ValueError("Cannot report on a run without a baseline")

    baseline = state.baseline_score
    final = state.current_score
    delta = final - baseline
    percent = delta / baseline * 100
    kept = len(state.kept)
    discarded = len(state.discarded)
    success_rate = kept / len(state.history) * 100 if state.history else 0.0
    generated_on = generated_on or date.today()

    lines = [
        f"# Evolutionary Optimization Report: {title}",
        "",
        f"**Date:** {generated_on.isoformat()}",
        f"**Rounds Completed:** {state.current_round}",
        f"**Baseline Score:** {baseline:.2f}/5.0",
        f"**Final Score:** {final:.2f}/5.0",
        f"**Total Improvement:** {delta:+.2f} ({percent:+.1f}%)",
        "",
        "## Summary",
        "",
        f"- Kept: {kept} mutations",
        f"- Discarded: {discarded} mutations",
        f"- Success Rate: {success_rate:.1f}%",
    ]

    reasons = Counter(r.reason for r in state.discarded)
    if reasons:
        lines += ["", "### Discard Reasons", ""]
        for reason in (RoundReason.NO_IMPROVEMENT, RoundReason.EDIT_FAILED, RoundReason.GENERATION_FAILED):
            if reasons[reason]:
                lines.append(f"- {_REASON_LABELS[reason]}: {reasons[reason]}")

    if state.history and state.history[-1].diminishing:
        lines += [
            "",
            "**Diminishing returns:** the last rounds averaged below the improvement "
            "threshold. Further mutations are unlikely to pay off.",
        ]

    lines += [
        "",
        "## Round-by-Round Results",
        "",
        "| Round | Mutation | Target | Previous | New | Delta | Decision | Reason |",
        "|-------|----------|--------|----------|-----|-------|----------|--------|",
    ]
    for r in state.history:
        new = f"{r.new_score:.2f}" if r.new_score is not None else "n/a"
        delta_cell = f"{r.improvement:+.2f}" if r.new_score is not None else "n/a"
        lines.append(
            f"| {r.round_number} | {r.mutation.name} | {r.mutation.target_criterion} "
            f"| {r.previous_score:.2f} | {new} | {delta_cell} "
            f"| {r.decision.value.upper()} | {r.reason.value} |"
        )

    errors = [r for r in state.history if r.error]
    if errors:
        lines += ["", "## Errors", ""]
        for r in errors:
            lines.append(f"- Round {r.round_number} ({r.mutation.name}): {r.error}")

    return "\n".join(lines) + "\n"


def format_criterion_name(name: str) -> str:
    return name.replace("_", " ").title()


def format_score_report(result: ScoreResult, title: str = "Document") -> str:
    lines = [
        f"# {title} Quality Score Report",
        "",
        f"**Overall Score:** {result.overall:.2f}/5.0",
        "",
        "## Scores by Criterion",
        "",
    ]
    for criterion, score in result.per_criterion.items():
        percentage = (score - 1) / 4 * 100
        lines.append(f"- **{format_criterion_name(criterion)}:** {score:.2f}/5.0 ({percentage:.0f}%)")

    lines += ["", "## Detailed Checks", ""]
    for criterion, outcomes in result.detail.items():
        lines += [f"### {format_criterion_name(criterion)}", ""]
        for outcome in outcomes:
            mark = "[x]" if outcome.passed else "[ ]"
            lines.append(f"- {mark} {outcome.name}")
        lines.append("")

    return "\n".join(lines)
