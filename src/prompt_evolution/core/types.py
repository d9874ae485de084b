from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, ClassVar, Mapping, Union


class Decision(str, Enum):
    KEEP = "keep"
    DISCARD = "discard"


class RoundReason(str, Enum):
    IMPROVED = "improved"
    NO_IMPROVEMENT = "no_improvement"
    EDIT_FAILED = "edit_failed"
    GENERATION_FAILED = "generation_failed"


# --- Rubric ---


@dataclass(frozen=True)
class PatternCheck:
    name: str
    pattern: re.Pattern[str]
    expect_present: bool = True  # False: pattern must be absent (banned phrase)


@dataclass(frozen=True)
class PredicateCheck:
    name: str
    predicate: Callable[[str], bool]


Check = Union[PatternCheck, PredicateCheck]


def pattern_check(
    name: str, regex: str, *, absent: bool = False, flags: int = re.IGNORECASE
) -> PatternCheck:
    return PatternCheck(name=name, pattern=re.compile(regex, flags), expect_present=not absent)


@dataclass(frozen=True)
class Criterion:
    name: str
    weight: float
    checks: tuple[Check, ...]


@dataclass(frozen=True)
class CheckOutcome:
    name: str
    passed: bool


@dataclass
class ScoreResult:
    per_criterion: dict[str, float]
    overall: float
    detail: dict[str, list[CheckOutcome]]


# --- Corpus ---


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest test class

    id: str
    title: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, **dict(self.fields)}


# --- Mutations ---


@dataclass(frozen=True)
class InsertAtLine:
    kind: ClassVar[str] = "insert_at_line"

    target_file: str
    line: int  # zero-based
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "target_file": self.target_file, "line": self.line, "content": self.content}


@dataclass(frozen=True)
class ReplacePattern:
    kind: ClassVar[str] = "replace_pattern"

    target_file: str
    pattern: str  # regular expression; the first match is replaced
    replacement: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "target_file": self.target_file,
            "pattern": self.pattern,
            "replacement": self.replacement,
        }


@dataclass(frozen=True)
class AppendToEnd:
    kind: ClassVar[str] = "append_to_end"

    target_file: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "target_file": self.target_file, "content": self.content}


Edit = Union[InsertAtLine, ReplacePattern, AppendToEnd]


@dataclass(frozen=True)
class Mutation:
    name: str
    target_criterion: str
    description: str
    edits: tuple[Edit, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target_criterion": self.target_criterion,
            "description": self.description,
            "edits": [edit.to_dict() for edit in self.edits],
        }


# --- Scoring across the corpus ---


@dataclass
class SampleScore:
    test_case_id: str
    overall: float | None = None
    per_criterion: dict[str, float] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_case_id": self.test_case_id,
            "overall": self.overall,
            "per_criterion": self.per_criterion,
            "error": self.error,
        }


@dataclass
class CorpusScore:
    score: float | None  # None when every sample failed to generate
    samples: list[SampleScore]

    @property
    def failed(self) -> list[SampleScore]:
        return [s for s in self.samples if s.error is not None]


# --- Run state ---


@dataclass(frozen=True)
class Round:
    round_number: int
    mutation: Mutation
    previous_score: float
    new_score: float | None
    improvement: float
    decision: Decision
    reason: RoundReason
    timestamp: str
    diminishing: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round_number,
            "mutation": self.mutation.to_dict(),
            "previous_score": self.previous_score,
            "new_score": self.new_score,
            "improvement": self.improvement,
            "decision": self.decision.value,
            "reason": self.reason.value,
            "timestamp": self.timestamp,
            "diminishing": self.diminishing,
            "error": self.error,
        }


@dataclass
class OptimizationState:
    current_round: int = 0
    baseline_score: float | None = None
    current_score: float | None = None
    history: list[Round] = field(default_factory=list)
    accepted_mutations: list[Mutation] = field(default_factory=list)

    def advanced(self, round_: Round) -> OptimizationState:
        """Return the state after ``round_`` completes. ``self`` is left untouched."""
        accepted = list(self.accepted_mutations)
        current_score = self.current_score
        if round_.decision is Decision.KEEP:
            accepted.append(round_.mutation)
            current_score = round_.new_score
        return replace(
            self,
            current_round=self.current_round + 1,
            current_score=current_score,
            history=[*self.history, round_],
            accepted_mutations=accepted,
        )

    @property
    def kept(self) -> list[Round]:
        return [r for r in self.history if r.decision is Decision.KEEP]

    @property
    def discarded(self) -> list[Round]:
        return [r for r in self.history if r.decision is Decision.DISCARD]

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_round": self.current_round,
            "baseline_score": self.baseline_score,
            "current_score": self.current_score,
            "history": [r.to_dict() for r in self.history],
            "accepted_mutations": [m.to_dict() for m in self.accepted_mutations],
        }


@dataclass
class RunConfig:
    domain: str
    baseline_dir: Path
    corpus: str = "default"
    mutations: str = "default"
    generator: str = "simulated"
    model: str = "anthropic/claude-sonnet-4-20250514"
    template: str | None = None
    max_rounds: int = 20
    min_improvement: float = 0.01
    convergence_window: int = 5
    generation_timeout: float = 120.0
    max_concurrency: int = 4
    output_dir: Path = field(default_factory=lambda: Path("runs"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "baseline_dir": str(self.baseline_dir),
            "corpus": self.corpus,
            "mutations": self.mutations,
            "generator": self.generator,
            "model": self.model,
            "template": self.template,
            "max_rounds": self.max_rounds,
            "min_improvement": self.min_improvement,
            "convergence_window": self.convergence_window,
            "generation_timeout": self.generation_timeout,
            "max_concurrency": self.max_concurrency,
            "output_dir": str(self.output_dir),
        }
