from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from prompt_evolution.core.errors import PersistenceError
from prompt_evolution.core.types import CorpusScore, OptimizationState, Round, RunConfig
from prompt_evolution.logging.report import build_report
from prompt_evolution.logging.trajectory import generate_trajectory_html

STATE_FILE = "state.json"
REPORT_FILE = "optimization-report.md"


class RunTracker:
    """Owns the run directory: working set, snapshots, per-round records and state."""

    def __init__(self, config: RunConfig, run_dir: Path | None = None) -> None:
        self.config = config

        if run_dir is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            run_dir = config.output_dir / f"run_{timestamp}"
        self.run_dir = run_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)

        for subdir in ["rounds", "backups"]:
            (self.run_dir / subdir).mkdir(exist_ok=True)

        config_path = self.run_dir / "config.json"
        if not config_path.exists():
            self._write_json(config_path, config.to_dict())

    @property
    def working_dir(self) -> Path:
        return self.run_dir / "working"

    @property
    def backups_dir(self) -> Path:
        return self.run_dir / "backups"

    @property
    def state_path(self) -> Path:
        return self.run_dir / STATE_FILE

    def save_state(self, state: OptimizationState) -> None:
        self._write_json(self.state_path, state.to_dict())

    def save_baseline(self, corpus_score: CorpusScore) -> None:
        self._write_json(
            self.run_dir / "baseline.json",
            {
                "score": corpus_score.score,
                "samples": [s.to_dict() for s in corpus_score.samples],
            },
        )

    def save_round(self, round_: Round, corpus_score: CorpusScore | None) -> None:
        data = round_.to_dict()
        data["samples"] = [s.to_dict() for s in corpus_score.samples] if corpus_score else []
        self._write_json(self.run_dir / "rounds" / f"round-{round_.round_number:03d}.json", data)

    def save_report(self, state: OptimizationState) -> Path:
        report_path = self.run_dir / REPORT_FILE
        try:
            report_path.write_text(build_report(state, title=f"{self.config.domain} templates"))
            generate_trajectory_html(self.run_dir)
        except OSError as e:
            raise PersistenceError(f"Could not write report to {self.run_dir}: {e}") from e
        return report_path

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        # Write beside the target and swap in, so a crash never leaves half a file.
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            tmp_path.write_text(json.dumps(data, indent=2))
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e
