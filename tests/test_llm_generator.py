from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from prompt_evolution.core.errors import GenerationError
from prompt_evolution.core.types import TestCase
from prompt_evolution.llm.generator import LLMDocumentGenerator
from prompt_evolution.llm.prompts import MISSING_VALUE, placeholder_name, render_template


def test_placeholder_name():
    assert placeholder_name("problemStatement") == "PROBLEM_STATEMENT"
    assert placeholder_name("problem_statement") == "PROBLEM_STATEMENT"
    assert placeholder_name("title") == "TITLE"


def test_render_template_fills_fields():
    rendered = render_template(
        "# {{TITLE}}\n\n{{PROBLEMS}}\n\n{{CONTEXT}}",
        {"title": "Feedback Hub", "problems": ["slow triage", "no trends"], "context": None},
    )
    assert rendered == f"# Feedback Hub\n\n- slow triage\n- no trends\n\n{MISSING_VALUE}"


def test_render_template_strips_unknown_placeholders():
    assert render_template("a {{UNKNOWN}} b", {}) == "a  b"


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    (tmp_path / "phase1.md").write_text("Write a PRD for {{TITLE}}.\nProblems:\n{{PROBLEMS}}\n")
    return tmp_path


@pytest.fixture
def case() -> TestCase:
    return TestCase(id="tc1", title="Feedback Hub", fields={"problems": ["slow triage"]})


@pytest.mark.asyncio
async def test_generator_sends_rendered_template(template_dir, case):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value="# PRD\n\nDone.")
    generator = LLMDocumentGenerator(llm, "phase1.md", temperature=0.2)

    document = await generator.generate(template_dir, case)

    assert document == "# PRD\n\nDone."
    system, user = llm.generate.call_args.args
    assert "Write a PRD for Feedback Hub." in user
    assert "- slow triage" in user
    assert llm.generate.call_args.kwargs["temperature"] == 0.2


@pytest.mark.asyncio
async def test_generator_reads_current_working_set(template_dir, case):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value="doc")
    generator = LLMDocumentGenerator(llm, "phase1.md")

    await generator.generate(template_dir, case)
    (template_dir / "phase1.md").write_text("Mutated prompt for {{TITLE}}")
    await generator.generate(template_dir, case)

    assert llm.generate.call_args.args[1] == "Mutated prompt for Feedback Hub"


@pytest.mark.asyncio
async def test_client_failure_becomes_generation_error(template_dir, case):
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=ConnectionError("rate limited"))
    generator = LLMDocumentGenerator(llm, "phase1.md")

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate(template_dir, case)
    assert exc_info.value.test_case_id == "tc1"
    assert "rate limited" in exc_info.value.reason


@pytest.mark.asyncio
async def test_empty_response_is_an_error(template_dir, case):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value="   ")
    generator = LLMDocumentGenerator(llm, "phase1.md")

    with pytest.raises(GenerationError, match="empty"):
        await generator.generate(template_dir, case)


@pytest.mark.asyncio
async def test_missing_template_is_an_error(template_dir, case):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value="doc")
    generator = LLMDocumentGenerator(llm, "missing.md")

    with pytest.raises(GenerationError, match="missing.md"):
        await generator.generate(template_dir, case)
    llm.generate.assert_not_called()
