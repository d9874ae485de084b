from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from prompt_evolution.cli.main import cli

CONFIGS = Path(__file__).parent.parent / "configs"

GOOD_PRD = """# Product Requirements Document: Feedback Hub

## 1. Problem Statement

Support triages feedback by hand. Reduce triage from 5 hours/week to 30 minutes/week.
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def only_run_dir(output_dir: Path) -> Path:
    runs = [p for p in output_dir.iterdir() if p.is_dir()]
    assert len(runs) == 1
    return runs[0]


def test_list_domains(runner):
    result = runner.invoke(cli, ["list-domains"])
    assert result.exit_code == 0
    for name in ("prd", "one_pager", "coe"):
        assert name in result.output


def test_list_corpora_and_mutations(runner):
    result = runner.invoke(cli, ["list-corpora", "--domain", "prd"])
    assert result.exit_code == 0
    assert "smoke" in result.output

    result = runner.invoke(cli, ["list-mutations", "--domain", "prd"])
    assert result.exit_code == 0
    assert "default" in result.output


def test_score_with_domain(runner, tmp_path):
    doc = tmp_path / "prd.md"
    doc.write_text(GOOD_PRD)
    result = runner.invoke(cli, ["score", str(doc), "--domain", "prd", "--details"])
    assert result.exit_code == 0
    assert "Overall" in result.output
    assert "pass" in result.output


def test_score_with_rubric_file(runner, tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("## Goals\n\nWe will improve things.\n")
    result = runner.invoke(
        cli, ["score", str(doc), "--rubric", str(CONFIGS / "rubrics" / "plain-language.yaml")]
    )
    assert result.exit_code == 0
    assert "Clarity" in result.output


def test_score_needs_a_rubric(runner, tmp_path):
    doc = tmp_path / "doc.md"
    doc.write_text("text")
    result = runner.invoke(cli, ["score", str(doc)])
    assert result.exit_code != 0


def test_run_simulated_then_report(runner, tmp_path):
    output_dir = tmp_path / "runs"
    result = runner.invoke(
        cli,
        ["run", "--domain", "prd", "--corpus", "smoke", "--max-rounds", "3", "--output-dir", str(output_dir)],
    )
    assert result.exit_code == 0, result.output

    run_dir = only_run_dir(output_dir)
    state = json.loads((run_dir / "state.json").read_text())
    assert state["current_round"] == 3
    assert state["current_score"] > state["baseline_score"]
    assert (run_dir / "baseline.json").exists()
    assert (run_dir / "rounds" / "round-001.json").exists()
    assert (run_dir / "backups" / "round-001").is_dir()
    assert json.loads((run_dir / "config.json").read_text())["domain"] == "prd"

    (run_dir / "optimization-report.md").unlink()
    result = runner.invoke(cli, ["report", str(run_dir)])
    assert result.exit_code == 0
    assert "Rounds Completed:** 3" in (run_dir / "optimization-report.md").read_text()


def test_resume_continues_run(runner, tmp_path):
    output_dir = tmp_path / "runs"
    result = runner.invoke(
        cli,
        ["run", "--domain", "prd", "--corpus", "smoke", "--max-rounds", "2", "--output-dir", str(output_dir)],
    )
    assert result.exit_code == 0, result.output
    run_dir = only_run_dir(output_dir)

    # Raise the round limit recorded for the run, then continue it.
    config_path = run_dir / "config.json"
    config = json.loads(config_path.read_text())
    config["max_rounds"] = 4
    config_path.write_text(json.dumps(config))

    result = runner.invoke(cli, ["run", "--resume", str(run_dir)])
    assert result.exit_code == 0, result.output
    state = json.loads((run_dir / "state.json").read_text())
    assert state["current_round"] == 4
    assert [r["round"] for r in state["history"]] == [1, 2, 3, 4]


def test_run_requires_domain(runner):
    result = runner.invoke(cli, ["run"])
    assert result.exit_code != 0
    assert "--domain" in result.output


def test_run_reports_configuration_errors(runner, tmp_path):
    result = runner.invoke(
        cli, ["run", "--domain", "prd", "--corpus", "nope", "--output-dir", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert "Error" in result.output


def test_score_writes_markdown_report(runner, tmp_path):
    doc = tmp_path / "prd.md"
    doc.write_text(GOOD_PRD)
    out = tmp_path / "score.md"
    result = runner.invoke(cli, ["score", str(doc), "--domain", "prd", "--output", str(out)])
    assert result.exit_code == 0, result.output

    text = out.read_text()
    assert text.startswith("# prd Quality Score Report")
    assert "## Scores by Criterion" in text
    assert "- [x] Has Problem Statement" in text
    assert "- [ ] Has Risks" in text


def test_report_lists_retained_snapshots(runner, tmp_path):
    output_dir = tmp_path / "runs"
    result = runner.invoke(
        cli,
        ["run", "--domain", "prd", "--corpus", "smoke", "--max-rounds", "2", "--output-dir", str(output_dir)],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["report", str(only_run_dir(output_dir))])
    assert result.exit_code == 0
    assert "Snapshots retained for rounds: 1, 2" in result.output
