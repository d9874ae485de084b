from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.core.types import RunConfig
from prompt_evolution.domains import get_domain
from prompt_evolution.llm.client import LLMClient
from prompt_evolution.llm.generator import LLMDocumentGenerator

if TYPE_CHECKING:
    from prompt_evolution.core.protocols import DocumentGenerator

GENERATORS = ("simulated", "llm")


def build_run_config(
    domain_name: str,
    corpus: str = "default",
    mutations: str = "default",
    baseline_dir: str | None = None,
    generator: str = "simulated",
    model: str = "anthropic/claude-sonnet-4-20250514",
    template: str | None = None,
    max_rounds: int = 20,
    min_improvement: float = 0.01,
    convergence_window: int = 5,
    generation_timeout: float = 120.0,
    max_concurrency: int = 4,
    output_dir: str = "./runs",
) -> RunConfig:
    plugin = get_domain(domain_name)

    if generator not in GENERATORS:
        raise ConfigurationError(f"Unknown generator {generator!r}. Choose from: {list(GENERATORS)}")
    if max_rounds < 1:
        raise ConfigurationError(f"max_rounds must be >= 1, got {max_rounds}")
    if convergence_window < 1:
        raise ConfigurationError(f"convergence_window must be >= 1, got {convergence_window}")
    if generation_timeout <= 0:
        raise ConfigurationError(f"generation_timeout must be positive, got {generation_timeout}")
    if max_concurrency < 1:
        raise ConfigurationError(f"max_concurrency must be >= 1, got {max_concurrency}")

    # Fail on unknown corpus or mutation list names before a run directory exists.
    plugin.config_path("test_cases", corpus)
    plugin.config_path("mutations", mutations)
    if generator == "simulated":
        plugin.create_simulator()

    resolved_baseline = Path(baseline_dir) if baseline_dir else plugin.templates_dir
    if not resolved_baseline.is_dir():
        raise ConfigurationError(f"Baseline template directory not found: {resolved_baseline}")

    resolved_template = template or plugin.default_template
    if generator == "llm" and not (resolved_baseline / resolved_template).is_file():
        raise ConfigurationError(
            f"Template {resolved_template!r} not found in {resolved_baseline}"
        )

    return RunConfig(
        domain=domain_name,
        baseline_dir=resolved_baseline,
        corpus=corpus,
        mutations=mutations,
        generator=generator,
        model=model,
        template=resolved_template,
        max_rounds=max_rounds,
        min_improvement=min_improvement,
        convergence_window=convergence_window,
        generation_timeout=generation_timeout,
        max_concurrency=max_concurrency,
        output_dir=Path(output_dir),
    )


def run_config_from_dict(data: dict) -> RunConfig:
    """Rebuild the config a run was started with, from its ``config.json``."""
    try:
        return RunConfig(
            domain=data["domain"],
            baseline_dir=Path(data["baseline_dir"]),
            corpus=data["corpus"],
            mutations=data["mutations"],
            generator=data["generator"],
            model=data["model"],
            template=data.get("template"),
            max_rounds=int(data["max_rounds"]),
            min_improvement=float(data["min_improvement"]),
            convergence_window=int(data["convergence_window"]),
            generation_timeout=float(data["generation_timeout"]),
            max_concurrency=int(data["max_concurrency"]),
            output_dir=Path(data["output_dir"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Malformed run config: {e}") from e


def create_generator(config: RunConfig) -> DocumentGenerator:
    if config.generator == "simulated":
        return get_domain(config.domain).create_simulator()
    template = config.template or get_domain(config.domain).default_template
    return LLMDocumentGenerator(LLMClient(config.model), template)
