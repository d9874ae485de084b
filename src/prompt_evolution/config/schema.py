"""Parsing and validation of on-disk run inputs.

Every function here raises ``ConfigurationError`` on malformed input so that
problems surface before the first round runs.
"""
from __future__ import annotations

import json
import re
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

import yaml

from prompt_evolution.core.errors import ConfigurationError
from prompt_evolution.core.scorer import validate_criteria
from prompt_evolution.core.types import (
    AppendToEnd,
    Criterion,
    Decision,
    Edit,
    InsertAtLine,
    Mutation,
    OptimizationState,
    ReplacePattern,
    Round,
    RoundReason,
    TestCase,
    pattern_check,
)


def load_document(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(f"File not found: {path}")
    text = path.read_text()
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e


def _records(data: Any, key: str, path: Path | str) -> list[Any]:
    # Accept either a bare list or a mapping with the list under ``key``.
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise ConfigurationError(f"{path}: expected a list of {key}")
    return data


# --- Test cases ---


def parse_test_cases(data: Any, source: Path | str = "<memory>") -> list[TestCase]:
    records = _records(data, "test_cases", source)
    if not records:
        raise ConfigurationError(f"{source}: test case corpus is empty")

    test_cases: list[TestCase] = []
    seen: set[str] = set()
    for record in records:
        if not isinstance(record, dict) or "id" not in record:
            raise ConfigurationError(f"{source}: every test case needs an 'id'")
        case_id = str(record["id"])
        if case_id in seen:
            raise ConfigurationError(f"{source}: duplicate test case id {case_id!r}")
        seen.add(case_id)

        fields = {k: v for k, v in record.items() if k not in ("id", "title")}
        test_cases.append(
            TestCase(
                id=case_id,
                title=str(record.get("title", case_id)),
                fields=MappingProxyType(fields),
            )
        )
    return test_cases


def load_test_cases(path: Path) -> list[TestCase]:
    return parse_test_cases(load_document(path), path)


# --- Mutations ---


def parse_edit(data: Any, source: str = "<memory>") -> Edit:
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: edit must be a mapping")

    target = data.get("target_file")
    if not isinstance(target, str) or not target:
        raise ConfigurationError(f"{source}: edit needs a 'target_file'")
    target_path = PurePosixPath(target)
    if target_path.is_absolute() or ".." in target_path.parts:
        raise ConfigurationError(f"{source}: target_file {target!r} must stay inside the working set")

    kind = data.get("kind")
    if kind == InsertAtLine.kind:
        line = data.get("line")
        if not isinstance(line, int) or isinstance(line, bool) or line < 0:
            raise ConfigurationError(f"{source}: insert_at_line needs a non-negative integer 'line'")
        return InsertAtLine(target_file=target, line=line, content=_text(data, "content", source))
    if kind == ReplacePattern.kind:
        pattern = _text(data, "pattern", source)
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"{source}: invalid pattern {pattern!r}: {e}") from e
        return ReplacePattern(
            target_file=target, pattern=pattern, replacement=_text(data, "replacement", source)
        )
    if kind == AppendToEnd.kind:
        return AppendToEnd(target_file=target, content=_text(data, "content", source))

    known = [InsertAtLine.kind, ReplacePattern.kind, AppendToEnd.kind]
    raise ConfigurationError(f"{source}: unknown edit kind {kind!r}. Expected one of: {known}")


def _text(data: dict, key: str, source: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ConfigurationError(f"{source}: edit needs a string {key!r}")
    return value


def parse_mutation(data: Any, source: str = "<memory>") -> Mutation:
    if not isinstance(data, dict) or not data.get("name"):
        raise ConfigurationError(f"{source}: every mutation needs a 'name'")
    name = str(data["name"])
    edits = data.get("edits") or []
    if not isinstance(edits, list):
        raise ConfigurationError(f"{source}: mutation {name!r} edits must be a list")
    return Mutation(
        name=name,
        target_criterion=str(data.get("target_criterion", "")),
        description=str(data.get("description", "")),
        edits=tuple(parse_edit(e, f"{source}: mutation {name!r}") for e in edits),
    )


def parse_mutations(data: Any, source: Path | str = "<memory>") -> list[Mutation]:
    mutations = [parse_mutation(m, str(source)) for m in _records(data, "mutations", source)]
    seen: set[str] = set()
    for mutation in mutations:
        if mutation.name in seen:
            raise ConfigurationError(f"{source}: duplicate mutation name {mutation.name!r}")
        seen.add(mutation.name)
    return mutations


def load_mutations(path: Path) -> list[Mutation]:
    return parse_mutations(load_document(path), path)


# --- Rubrics ---


def parse_rubric(data: Any, source: Path | str = "<memory>") -> list[Criterion]:
    """Pattern-only rubric from YAML. Predicate checks need a Python rubric."""
    criteria: list[Criterion] = []
    for record in _records(data, "criteria", source):
        if not isinstance(record, dict) or "name" not in record:
            raise ConfigurationError(f"{source}: every criterion needs a 'name'")
        checks = []
        for check in record.get("checks") or []:
            if not isinstance(check, dict) or "pattern" not in check:
                raise ConfigurationError(f"{source}: checks in {record['name']!r} need a 'pattern'")
            try:
                checks.append(
                    pattern_check(
                        str(check.get("name", check["pattern"])),
                        str(check["pattern"]),
                        absent=bool(check.get("absent", False)),
                    )
                )
            except re.error as e:
                raise ConfigurationError(f"{source}: invalid pattern {check['pattern']!r}: {e}") from e
        try:
            weight = float(record.get("weight", 1.0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{source}: weight of {record['name']!r} is not a number") from e
        criteria.append(Criterion(name=str(record["name"]), weight=weight, checks=tuple(checks)))

    validate_criteria(criteria)
    return criteria


def load_rubric(path: Path) -> list[Criterion]:
    return parse_rubric(load_document(path), path)


# --- Persisted state ---


def parse_state(data: Any, source: Path | str = "<memory>") -> OptimizationState:
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: state must be a mapping")
    try:
        history = [
            Round(
                round_number=int(r["round"]),
                mutation=parse_mutation(r["mutation"], str(source)),
                previous_score=float(r["previous_score"]),
                new_score=None if r["new_score"] is None else float(r["new_score"]),
                improvement=float(r["improvement"]),
                decision=Decision(r["decision"]),
                reason=RoundReason(r["reason"]),
                timestamp=str(r["timestamp"]),
                diminishing=bool(r.get("diminishing", False)),
                error=r.get("error"),
            )
            for r in data.get("history", [])
        ]
        state = OptimizationState(
            current_round=int(data["current_round"]),
            baseline_score=data.get("baseline_score"),
            current_score=data.get("current_score"),
            history=history,
            accepted_mutations=[
                parse_mutation(m, str(source)) for m in data.get("accepted_mutations", [])
            ],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"{source}: malformed run state: {e}") from e

    if state.current_round != len(state.history):
        raise ConfigurationError(
            f"{source}: current_round {state.current_round} does not match "
            f"{len(state.history)} recorded rounds"
        )
    return state


def load_state(path: Path) -> OptimizationState:
    return parse_state(load_document(path), path)
