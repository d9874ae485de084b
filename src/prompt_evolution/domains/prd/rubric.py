"""Product requirements document rubric.

Covers completeness of the standard PRD sections, precise language, numbered
structure, cross-section consistency, and staying on "why/what" rather than
prescribing implementation.
"""
from __future__ import annotations

import re

from prompt_evolution.core.types import Criterion, PredicateCheck, pattern_check


def _has(pattern: str, content: str) -> bool:
    return re.search(pattern, content, re.IGNORECASE) is not None


def metrics_align_with_goals(content: str) -> bool:
    return (
        _has(r"##\s+3\.\s+Goals", content)
        and _has(r"Success Metrics", content)
        and _has(r"baseline|current state|from \d+", content)
    )


def requirements_support_solution(content: str) -> bool:
    return (
        _has(r"##\s+4\.\s+.*Solution", content)
        and _has(r"##\s+6\.\s+Requirements", content)
        and _has(r"FR\d+|NFR\d+|REQ-\d+", content)
    )


def stakeholders_have_roles(content: str) -> bool:
    return _has(r"##\s+7\.\s+Stakeholders", content) and _has(r"Role:|Impact:|Needs:", content)


def prd_criteria() -> list[Criterion]:
    return [
        Criterion(
            name="comprehensiveness",
            weight=1.0,
            checks=(
                pattern_check("Has Executive Summary", r"##\s+1\.\s+Executive Summary"),
                pattern_check("Has Problem Statement", r"##\s+2\.\s+Problem Statement"),
                pattern_check("Has Goals and Objectives", r"##\s+3\.\s+Goals"),
                pattern_check("Has Success Metrics", r"Success Metrics"),
                pattern_check("Has Requirements", r"##\s+6\.\s+Requirements"),
                pattern_check("Has Stakeholders", r"##\s+7\.\s+Stakeholders"),
                pattern_check("Has Risks", r"##\s+9\.\s+Risks"),
                pattern_check("Quantifies Impact", r"\d+%|\$\d+|from \d+ to \d+"),
            ),
        ),
        Criterion(
            name="clarity",
            weight=1.0,
            checks=(
                pattern_check('No vague "improve"', r"\bimprove\b(?!\s+from)", absent=True),
                pattern_check('No vague "enhance"', r"\benhance\b(?!\s+from)", absent=True),
                pattern_check('No vague "user-friendly"', r"user-friendly", absent=True),
                pattern_check('No vague "better"', r"\bbetter\b", absent=True),
                pattern_check('No vague "optimize"', r"\boptimize\b(?!\s+for)", absent=True),
                pattern_check('No vague "faster"', r"\bfaster\b(?!\s+\()", absent=True),
                pattern_check('No vague "easier"', r"\beasier\b(?!\s+\()", absent=True),
                pattern_check("Has specific metrics", r"baseline|target|from \d+ to \d+"),
                pattern_check("Has quantified goals", r"\d+%|\d+x|<\d+|>\d+"),
                pattern_check("Requirements are numbered", r"FR\d+|NFR\d+|REQ-\d+"),
            ),
        ),
        Criterion(
            name="structure",
            weight=1.0,
            checks=(
                pattern_check("Uses section numbering", r"##\s+\d+\."),
                pattern_check("Uses subsection numbering", r"###\s+\d+\.\d+"),
                pattern_check("No metadata table", r"\|\s*Author\s*\||\|\s*Version\s*\|", absent=True),
                pattern_check("Has markdown headers", r"^##\s+", flags=re.IGNORECASE | re.MULTILINE),
                pattern_check("Proper hierarchy", r"##\s+\d+\..*\n[\s\S]*?###\s+\d+\.\d+"),
            ),
        ),
        Criterion(
            name="consistency",
            weight=1.0,
            checks=(
                PredicateCheck("Metrics align with goals", metrics_align_with_goals),
                PredicateCheck("Requirements support solution", requirements_support_solution),
                PredicateCheck("Stakeholders in requirements", stakeholders_have_roles),
                pattern_check("Risks have mitigations", r"mitigation|mitigate|address"),
            ),
        ),
        Criterion(
            name="engineering_ready",
            weight=1.0,
            checks=(
                pattern_check('No "use microservices"', r"use microservices|microservices architecture", absent=True),
                pattern_check('No "implement OAuth"', r"implement OAuth|use OAuth", absent=True),
                pattern_check(
                    'No "store in PostgreSQL"',
                    r"store in PostgreSQL|use PostgreSQL|use MySQL|use MongoDB",
                    absent=True,
                ),
                pattern_check('No "build React dashboard"', r"build.*React|use React|use Angular|use Vue", absent=True),
                pattern_check('No "use ML model"', r"use.*machine learning|ML model|train.*model", absent=True),
                pattern_check('No "deploy to AWS"', r"deploy to AWS|use AWS Lambda|use Azure|use GCP", absent=True),
                pattern_check('No "implement REST API"', r"implement REST|REST API|GraphQL API", absent=True),
                pattern_check('No "use Redis"', r"use Redis|Redis cache|Memcached", absent=True),
                pattern_check("Focuses on outcomes", r"must be able to|users can|system shall|system must"),
            ),
        ),
    ]
