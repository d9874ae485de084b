from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_evolution.domains.base import DomainPlugin
from prompt_evolution.domains.coe.rubric import coe_criteria

if TYPE_CHECKING:
    from prompt_evolution.core.types import Criterion


class COEDomain(DomainPlugin):
    name = "coe"
    description = "Center-of-excellence charters scored on coverage, practicality and measurability"
    default_template = "phase1-initial.md"

    def criteria(self) -> list[Criterion]:
        return coe_criteria()
