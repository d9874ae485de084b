from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from prompt_evolution.core.types import Criterion, ScoreResult, TestCase


@runtime_checkable
class DocumentGenerator(Protocol):
    """Produces one document from the working template set for one test case.

    Implementations raise ``GenerationError`` on failure. The optimizer bounds
    every call with its own timeout.
    """

    async def generate(self, template_dir: Path, test_case: TestCase) -> str: ...


@runtime_checkable
class Scorer(Protocol):
    criteria: tuple[Criterion, ...]

    def score(self, document: str) -> ScoreResult: ...
