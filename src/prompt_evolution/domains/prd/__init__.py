from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_evolution.domains.base import DomainPlugin
from prompt_evolution.domains.prd.rubric import prd_criteria
from prompt_evolution.domains.prd.simulator import PHASE1_TEMPLATE, SimulatedPRDGenerator

if TYPE_CHECKING:
    from prompt_evolution.core.types import Criterion


class PRDDomain(DomainPlugin):
    name = "prd"
    description = "Product requirements documents scored on completeness, clarity and engineering readiness"
    default_template = PHASE1_TEMPLATE

    def criteria(self) -> list[Criterion]:
        return prd_criteria()

    def create_simulator(self) -> SimulatedPRDGenerator:
        return SimulatedPRDGenerator()
