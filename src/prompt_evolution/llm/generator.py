from __future__ import annotations

import logging
from pathlib import Path

from prompt_evolution.core.errors import GenerationError
from prompt_evolution.core.types import TestCase
from prompt_evolution.llm.client import LLMClient
from prompt_evolution.llm.prompts import SYSTEM_PROMPT, render_template

logger = logging.getLogger(__name__)


class LLMDocumentGenerator:
    """Renders one template from the working set per test case and asks the model for the document."""

    def __init__(self, llm: LLMClient, template: str, temperature: float = 0.7) -> None:
        self.llm = llm
        self.template = template
        self.temperature = temperature

    async def generate(self, template_dir: Path, test_case: TestCase) -> str:
        template_path = template_dir / self.template
        if not template_path.is_file():
            raise GenerationError(test_case.id, f"template {self.template!r} not found in working set")

        fields = {"title": test_case.title, **dict(test_case.fields)}
        user = render_template(template_path.read_text(), fields)

        logger.debug("=== GENERATION (test case %s) ===", test_case.id)
        logger.debug("USER PROMPT:\n%s", user)

        try:
            response = await self.llm.generate(SYSTEM_PROMPT, user, temperature=self.temperature)
        except Exception as e:
            raise GenerationError(test_case.id, f"{type(e).__name__}: {e}") from e

        logger.debug("RESPONSE:\n%s", response)
        if not response.strip():
            raise GenerationError(test_case.id, "model returned an empty document")
        return response
