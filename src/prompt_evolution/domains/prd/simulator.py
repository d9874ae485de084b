from __future__ import annotations

import logging
import re
from pathlib import Path

from prompt_evolution.core.types import TestCase

logger = logging.getLogger(__name__)

PHASE1_TEMPLATE = "phase1-claude-initial.md"
PHASE2_TEMPLATE = "phase2-gemini-review.md"

# Template features the simulated PRD responds to. Each maps to a quality
# difference a live model shows when the prompt asks for it.
_BANNED_WORDS = re.compile(r"Banned Vague Language|NEVER use these vague terms", re.IGNORECASE)
_NO_IMPLEMENTATION = re.compile(
    r'Focus on "Why" and "What", NOT "How"|FORBIDDEN.*Implementation', re.IGNORECASE
)
_ADVERSARIAL = re.compile(r"Enhance Adversarial Tension|Your Role is to CHALLENGE", re.IGNORECASE)
_STAKEHOLDER_TEMPLATE = re.compile(
    r"Stakeholder Impact Requirements|Role.*Impact.*Needs.*Success Criteria", re.IGNORECASE
)
_METRICS_TEMPLATE = re.compile(
    r"Require Quantified Success Metrics|Baseline.*Target.*Timeline|Measurement Method", re.IGNORECASE
)
_NUMBERED_REQUIREMENTS = re.compile(r"FR\d+|NFR\d+|REQ-\d+", re.IGNORECASE)


class SimulatedPRDGenerator:
    """Deterministic stand-in for a live model.

    Builds a PRD for the test case whose sections get sharper as the working
    templates gain the instructions a real model would follow. No network.
    """

    async def generate(self, template_dir: Path, test_case: TestCase) -> str:
        phase1 = _read(template_dir / PHASE1_TEMPLATE)
        phase2 = _read(template_dir / PHASE2_TEMPLATE)
        return render_prd(test_case, phase1, phase2)


def _read(path: Path) -> str:
    if not path.exists():
        logger.debug("Template %s missing; simulating without it", path)
        return ""
    return path.read_text()


def render_prd(test_case: TestCase, phase1: str, phase2: str) -> str:
    banned_words = bool(_BANNED_WORDS.search(phase1))
    no_implementation = bool(_NO_IMPLEMENTATION.search(phase1))
    adversarial = bool(_ADVERSARIAL.search(phase2))
    stakeholder_template = bool(_STAKEHOLDER_TEMPLATE.search(phase1))
    metrics_template = bool(_METRICS_TEMPLATE.search(phase1))
    numbered_requirements = bool(_NUMBERED_REQUIREMENTS.search(phase1))

    problems = list(test_case.fields.get("problems") or [test_case.title])

    out = [f"# Product Requirements Document: {test_case.title}", ""]

    out += ["## 1. Executive Summary", "", f"This PRD addresses {problems[0]}.", ""]

    out += ["## 2. Problem Statement", ""]
    out += [f"- {problem}" for problem in problems]
    out.append("")

    out += ["## 3. Goals and Objectives", "", "### 3.1 Business Goals", ""]
    if banned_words and metrics_template:
        out += [
            "- Reduce manual work from 5 hours/week to 30 minutes/week (90% reduction)",
            "- Increase customer satisfaction from 42 to 48 NPS (14% improvement)",
        ]
    else:
        out += ["- Improve efficiency", "- Enhance user experience"]
    out.append("")

    out += ["### 3.3 Success Metrics", ""]
    if metrics_template:
        out += [
            "- **Metric:** Manual categorization time",
            "- **Baseline:** 5 hours/week (measured Q4 2024)",
            "- **Target:** 30 minutes/week",
            "- **Timeline:** 3 months post-launch",
            "- **Measurement:** Weekly time tracking reports",
        ]
    else:
        out.append("We will measure success through improved metrics.")
    out.append("")

    out += ["## 4. Proposed Solution", ""]
    if no_implementation:
        out += [
            "Users must be able to submit feedback through a centralized interface.",
            "The system shall categorize feedback automatically with >85% accuracy.",
        ]
        if adversarial:
            out += [
                "",
                "**Alternative Approach Considered:** Integrate feedback into the existing "
                "support ticket system instead of building a new interface. Rejected due to "
                "the need for a specialized categorization workflow.",
            ]
    else:
        out += [
            "Build a React dashboard using microservices architecture.",
            "Implement OAuth 2.0 for authentication.",
            "Use machine learning model to categorize feedback.",
        ]
    out.append("")

    out += [
        "## 5. Scope",
        "",
        "### 5.1 In Scope",
        "",
        "- Feedback collection",
        "- Categorization",
        "- Reporting",
        "",
        "### 5.2 Out of Scope",
        "",
        "- Advanced analytics",
        "- Third-party integrations",
        "",
    ]

    out += ["## 6. Requirements", "", "### 6.1 Functional Requirements", ""]
    if numbered_requirements:
        out += [
            "- **FR1:** Users can submit feedback in <30 seconds",
            "- **FR2:** System categorizes feedback with >85% accuracy",
            "- **FR3:** Reports generated in <5 seconds",
        ]
    else:
        out += ["- Users can submit feedback", "- System categorizes feedback", "- Reports are available"]
    out += ["", "### 6.2 Non-Functional Requirements", ""]
    if numbered_requirements:
        out += [
            "- **NFR1:** System handles 1000 concurrent users",
            "- **NFR2:** 99.9% uptime SLA",
            "- **NFR3:** Response time <2 seconds",
        ]
    else:
        out += ["- System must be scalable", "- System must be reliable", "- System must be fast"]
    out.append("")

    out += ["## 7. Stakeholders", ""]
    if stakeholder_template:
        out += [
            "### 7.1 Customer Support Team",
            "- **Role:** Handle customer inquiries",
            "- **Impact:** Workload reduced from 200 emails/day to 50 emails/day (75% reduction)",
            "- **Needs:** Training on new system, access to dashboard",
            "- **Success Criteria:** Response time <2 hours, satisfaction >90%",
        ]
    else:
        out += ["- Customer Support Team", "- Product Team", "- Engineering Team"]
    out.append("")

    out += [
        "## 8. Timeline and Milestones",
        "",
        "- Phase 1: Design (2 weeks)",
        "- Phase 2: Development (6 weeks)",
        "- Phase 3: Testing (2 weeks)",
        "- Phase 4: Launch (1 week)",
        "",
        "## 9. Risks and Mitigations",
        "",
        "- **Risk:** Low adoption",
        "- **Mitigation:** Conduct user training and provide documentation",
        "",
        "## 10. Open Questions",
        "",
        "- What is the budget for this project?",
        "- When is the target launch date?",
        "",
    ]
    return "\n".join(out)
