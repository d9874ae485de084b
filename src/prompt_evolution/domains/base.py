from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from prompt_evolution.config.schema import load_mutations, load_test_cases
from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.core.scorer import RubricScorer

if TYPE_CHECKING:
    from prompt_evolution.core.protocols import DocumentGenerator
    from prompt_evolution.core.types import Criterion, Mutation, TestCase

CONFIGS_ROOT = Path(__file__).parent.parent.parent.parent / "configs"


class DomainPlugin:
    """One document type: its rubric, its on-disk inputs and optional simulator."""

    name: str
    description: str
    default_template: str

    @property
    def configs_dir(self) -> Path:
        return CONFIGS_ROOT / self.name

    @property
    def templates_dir(self) -> Path:
        return self.configs_dir / "templates"

    def criteria(self) -> list[Criterion]:
        raise NotImplementedError

    def create_scorer(self) -> RubricScorer:
        return RubricScorer(self.criteria())

    def create_simulator(self) -> DocumentGenerator:
        raise ConfigurationError(f"Domain {self.name!r} has no simulated generator; use --generator llm")

    def list_configs(self, config_type: str) -> list[str]:
        """List available config names for a given type ('test_cases' or 'mutations')."""
        config_dir = self.configs_dir / config_type
        if not config_dir.exists():
            return []
        return sorted(p.stem for p in config_dir.iterdir() if p.suffix in (".yaml", ".yml", ".json"))

    def config_path(self, config_type: str, name: str) -> Path:
        for suffix in (".yaml", ".yml", ".json"):
            path = self.configs_dir / config_type / f"{name}{suffix}"
            if path.exists():
                return path
        available = self.list_configs(config_type)
        raise ConfigurationError(f"{config_type} {name!r} not found for {self.name}. Available: {available}")

    def load_corpus(self, name: str) -> list[TestCase]:
        return load_test_cases(self.config_path("test_cases", name))

    def load_mutations(self, name: str) -> list[Mutation]:
        return load_mutations(self.config_path("mutations", name))
