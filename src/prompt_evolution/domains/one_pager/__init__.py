from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_evolution.domains.base import DomainPlugin
from prompt_evolution.domains.one_pager.rubric import one_pager_criteria

if TYPE_CHECKING:
    from prompt_evolution.core.types import Criterion


class OnePagerDomain(DomainPlugin):
    name = "one_pager"
    description = "One-page proposals scored on clarity, conciseness, actionability and business impact"
    default_template = "phase1-initial.md"

    def criteria(self) -> list[Criterion]:
        return one_pager_criteria()
