from __future__ import annotations

import re

from prompt_evolution.core.types import Criterion, PredicateCheck, pattern_check

MAX_WORDS = 1000
MAX_LINES = 100
MAX_SUBSECTIONS = 10
MAX_BULLETS = 30

_BULLET = re.compile(r"^\s*[-*]", re.MULTILINE)


def fits_on_one_page(content: str) -> bool:
    return len(content.split()) <= MAX_WORDS and len(content.split("\n")) <= MAX_LINES


def stays_high_level(content: str) -> bool:
    return content.count("###") <= MAX_SUBSECTIONS and len(_BULLET.findall(content)) <= MAX_BULLETS


def addresses_stakeholder_concerns(content: str) -> bool:
    flags = re.IGNORECASE
    has_stakeholders = re.search(r"stakeholder|audience|team", content, flags) is not None
    addresses_concerns = re.search(r"concern|risk|challenge|objection", content, flags) is not None
    shows_impact = re.search(r"impact|benefit|value", content, flags) is not None
    return has_stakeholders and (addresses_concerns or shows_impact)


def one_pager_criteria() -> list[Criterion]:
    return [
        Criterion(
            name="clarity",
            weight=1.0,
            checks=(
                pattern_check("Has clear problem statement", r"##\s+Problem|##\s+Challenge|##\s+Opportunity"),
                pattern_check("Has proposed solution", r"##\s+Solution|##\s+Proposal|##\s+Approach"),
                pattern_check('No vague "improve"', r"\bimprove\b(?!\s+from)", absent=True),
                pattern_check('No vague "enhance"', r"\benhance\b(?!\s+from)", absent=True),
                pattern_check('No vague "better"', r"\bbetter\b", absent=True),
                pattern_check('No vague "optimize"', r"\boptimize\b(?!\s+for)", absent=True),
                pattern_check("Has specific metrics", r"baseline|target|from \d+ to \d+"),
                pattern_check("Has quantified goals", r"\d+%|\d+x|<\d+|>\d+|\$\d+"),
            ),
        ),
        Criterion(
            name="conciseness",
            weight=1.0,
            checks=(
                PredicateCheck("Reasonable length", fits_on_one_page),
                pattern_check("No metadata table", r"\|\s*Author\s*\||\|\s*Version\s*\|", absent=True),
                PredicateCheck("No excessive detail", stays_high_level),
                pattern_check("Focused scope", r"out of scope|not included|future consideration"),
                pattern_check("Clear structure", r"^##\s+", flags=re.IGNORECASE | re.MULTILINE),
            ),
        ),
        Criterion(
            name="actionability",
            weight=1.0,
            checks=(
                pattern_check("Has next steps", r"##\s+Next Steps|##\s+Action Items|##\s+Timeline"),
                pattern_check("Has success criteria", r"success criteria|success metrics|how we measure"),
                pattern_check("Has timeline", r"Q\d|week|month|by \d{4}|timeline"),
                pattern_check("Has ownership", r"owner|responsible|lead|DRI"),
                pattern_check("Specific actions", r"will|must|should|need to"),
                pattern_check('No vague "explore"', r"\bexplore\b(?!\s+by)", absent=True),
                pattern_check('No vague "consider"', r"\bconsider\b(?!\s+by)", absent=True),
            ),
        ),
        Criterion(
            name="stakeholder_alignment",
            weight=1.0,
            checks=(
                pattern_check("Identifies stakeholders", r"stakeholder|audience|team|department"),
                PredicateCheck("Addresses concerns", addresses_stakeholder_concerns),
                pattern_check("Shows impact per group", r"impact on|benefit to|value for"),
                pattern_check("Has buy-in section", r"alignment|approval|sign-off|consensus"),
            ),
        ),
        Criterion(
            name="business_impact",
            weight=1.0,
            checks=(
                pattern_check("Quantifies value", r"\$\d+|save \d+|reduce.*\d+%|increase.*\d+%"),
                pattern_check("Has ROI or cost-benefit", r"ROI|cost|benefit|savings|revenue"),
                pattern_check("Links to business goals", r"business goal|strategic|objective|OKR|KPI"),
                pattern_check("Shows urgency", r"why now|timing|opportunity|risk of delay"),
                pattern_check("Competitive context", r"competitor|market|industry|benchmark"),
            ),
        ),
    ]
