from __future__ import annotations

from enum import Enum


class OptimizationError(Exception):
    """Base class for every error raised by the optimizer."""


class ConfigurationError(OptimizationError, ValueError):
    """Invalid rubric, corpus, mutation list or run settings. Fatal, never retried."""


class GenerationError(OptimizationError):
    def __init__(self, test_case_id: str, message: str) -> None:
        super().__init__(f"Generation failed for test case {test_case_id!r}: {message}")
        self.test_case_id = test_case_id
        self.reason = message


class EditErrorKind(str, Enum):
    OUT_OF_RANGE = "out_of_range"
    PATTERN_NOT_FOUND = "pattern_not_found"
    FILE_NOT_FOUND = "file_not_found"


class EditError(OptimizationError):
    def __init__(self, kind: EditErrorKind, target_file: str, message: str) -> None:
        super().__init__(f"{kind.value} in {target_file}: {message}")
        self.kind = kind
        self.target_file = target_file


class PersistenceError(OptimizationError):
    """Run state could not be written to disk. The run halts."""
