from __future__ import annotations

import re

from prompt_evolution.core.types import Criterion, PredicateCheck, pattern_check

_PILLARS = (
    re.compile(r"governance|decision|authority", re.IGNORECASE),
    re.compile(r"standard|best practice|guideline", re.IGNORECASE),
    re.compile(r"training|enablement|education", re.IGNORECASE),
    re.compile(r"tool|platform|infrastructure", re.IGNORECASE),
)
_THEORETICAL = re.compile(r"in theory|ideally|conceptually|philosophically", re.IGNORECASE)
_ACTIONABLE = re.compile(r"step|action|implement|execute|deliver", re.IGNORECASE)


def covers_coe_pillars(content: str) -> bool:
    """At least 3 of the 4 pillars: governance, standards, training, tooling."""
    return sum(1 for pillar in _PILLARS if pillar.search(content)) >= 3


def practical_focus(content: str) -> bool:
    return not _THEORETICAL.search(content) and _ACTIONABLE.search(content) is not None


def coe_criteria() -> list[Criterion]:
    return [
        Criterion(
            name="comprehensiveness",
            weight=1.0,
            checks=(
                pattern_check("Has governance model", r"governance|decision.*framework|authority"),
                pattern_check("Has standards/best practices", r"standard|best practice|guideline|policy"),
                pattern_check("Has training/enablement", r"training|enablement|onboarding|education"),
                pattern_check("Has roles and responsibilities", r"role|responsibility|RACI|DRI"),
                pattern_check("Has communication plan", r"communication|meeting|sync|cadence"),
                pattern_check("Has tooling/infrastructure", r"tool|platform|infrastructure|system"),
                pattern_check("Has metrics/KPIs", r"KPI|metric|measure|track"),
                PredicateCheck("Covers all COE pillars", covers_coe_pillars),
            ),
        ),
        Criterion(
            name="clarity",
            weight=1.0,
            checks=(
                pattern_check("Clear role definitions", r"role.*:|responsibility.*:|accountable for"),
                pattern_check("Unambiguous ownership", r"owner|DRI|responsible party|lead"),
                pattern_check('No vague "improve"', r"\bimprove\b(?!\s+from)", absent=True),
                pattern_check('No vague "enhance"', r"\benhance\b(?!\s+from)", absent=True),
                pattern_check('No vague "better"', r"\bbetter\b", absent=True),
                pattern_check("Specific processes", r"process:|workflow:|procedure:|step \d+"),
                pattern_check("Clear decision criteria", r"decision.*criteria|approval.*process|escalation"),
                pattern_check("Defined scope", r"in scope|out of scope|covers|includes"),
            ),
        ),
        Criterion(
            name="practicality",
            weight=1.0,
            checks=(
                pattern_check("Actionable processes", r"step|action|task|deliverable"),
                pattern_check("Realistic timelines", r"week|month|quarter|phase|milestone"),
                pattern_check("Resource requirements", r"resource|headcount|budget|cost"),
                PredicateCheck("No theoretical fluff", practical_focus),
                pattern_check("Has templates/examples", r"template|example|sample|checklist"),
                pattern_check("Integration with existing", r"integrate|existing|current|leverage"),
            ),
        ),
        Criterion(
            name="measurability",
            weight=1.0,
            checks=(
                pattern_check("Has quantified KPIs", r"\d+%|\d+x|<\d+|>\d+"),
                pattern_check("Baseline metrics", r"baseline|current state|as-is"),
                pattern_check("Target metrics", r"target|goal|objective|aim for"),
                pattern_check("Measurement method", r"measure|track|monitor|report"),
                pattern_check("Success criteria", r"success.*criteria|success.*metric|definition of done"),
                pattern_check("Review cadence", r"review|retrospective|assessment|audit"),
            ),
        ),
        Criterion(
            name="scalability",
            weight=1.0,
            checks=(
                pattern_check("Addresses team growth", r"scale|grow|expand|increase.*team"),
                pattern_check("Flexible processes", r"adapt|flexible|adjust|customize"),
                pattern_check("Automation mentioned", r"automate|self-service|tooling"),
                pattern_check("Onboarding process", r"onboard|ramp.*up|new.*hire|new.*member"),
                pattern_check("Knowledge management", r"document|wiki|knowledge.*base|runbook"),
                pattern_check("Future considerations", r"future|roadmap|evolution|next.*phase"),
            ),
        ),
    ]
