from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from rich.console import Console

from prompt_evolution.core.backup import BackupHandle, BackupManager
from prompt_evolution.core.convergence import is_diminishing
from prompt_evolution.core.edits import apply_mutation
from prompt_evolution.core.errors import (
    ConfigurationError,
    EditError,
    GenerationError,
    OptimizationError,
    PersistenceError,
)
from prompt_evolution.core.types import (
    CorpusScore,
    Decision,
    Mutation,
    OptimizationState,
    Round,
    RoundReason,
    RunConfig,
    SampleScore,
    TestCase,
)

if TYPE_CHECKING:
    from prompt_evolution.core.protocols import DocumentGenerator, Scorer
    from prompt_evolution.logging.run_tracker import RunTracker

console = Console()
logger = logging.getLogger(__name__)


class Phase(str, Enum):
    UNINITIALIZED = "uninitialized"
    BASELINE_ESTABLISHED = "baseline_established"
    ROUND_IN_PROGRESS = "round_in_progress"
    ROUND_COMPLETED = "round_completed"
    FINISHED = "finished"


class MutationOptimizer:
    """Hill-climbing over an ordered list of template mutations.

    Every round snapshots the working set, applies one mutation, scores the
    corpus and keeps the mutation only on strict improvement. Anything else
    restores the snapshot. State is persisted after every completed round;
    a round that cannot be persisted is not committed.
    """

    def __init__(
        self,
        scorer: Scorer,
        generator: DocumentGenerator,
        corpus: Sequence[TestCase],
        tracker: RunTracker,
        config: RunConfig,
        state: OptimizationState | None = None,
    ) -> None:
        if not corpus:
            raise ConfigurationError("Test case corpus is empty")
        if config.max_concurrency < 1:
            raise ConfigurationError(f"max_concurrency must be >= 1, got {config.max_concurrency}")

        self.scorer = scorer
        self.generator = generator
        self.corpus = tuple(corpus)
        self.tracker = tracker
        self.config = config
        self.backups = BackupManager(tracker.working_dir, tracker.backups_dir)

        if state is None or state.baseline_score is None:
            self.state = OptimizationState()
            self.phase = Phase.UNINITIALIZED
        else:
            self.state = state
            self.phase = Phase.ROUND_COMPLETED if state.history else Phase.BASELINE_ESTABLISHED

    @property
    def working_dir(self) -> Path:
        return self.tracker.working_dir

    # --- Scoring ---

    async def evaluate_corpus(self) -> CorpusScore:
        """Generate and score one document per test case, concurrently.

        Samples come back in corpus order and the mean is taken in that order,
        so the result does not depend on scheduling.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        samples = await asyncio.gather(
            *(self._score_test_case(test_case, semaphore) for test_case in self.corpus)
        )
        scored = [s.overall for s in samples if s.overall is not None]
        score = sum(scored) / len(scored) if scored else None
        return CorpusScore(score=score, samples=list(samples))

    async def _score_test_case(self, test_case: TestCase, semaphore: asyncio.Semaphore) -> SampleScore:
        async with semaphore:
            try:
                document = await asyncio.wait_for(
                    self.generator.generate(self.working_dir, test_case),
                    timeout=self.config.generation_timeout,
                )
            except asyncio.TimeoutError:
                message = f"timed out after {self.config.generation_timeout}s"
                logger.warning("Generation for %s %s", test_case.id, message)
                return SampleScore(test_case_id=test_case.id, error=message)
            except GenerationError as e:
                logger.warning("%s", e)
                return SampleScore(test_case_id=test_case.id, error=e.reason)
            except Exception as e:
                logger.warning("Generation for %s raised", test_case.id, exc_info=True)
                return SampleScore(test_case_id=test_case.id, error=f"{type(e).__name__}: {e}")

        result = self.scorer.score(document)
        return SampleScore(
            test_case_id=test_case.id,
            overall=result.overall,
            per_criterion=result.per_criterion,
        )

    # --- State machine ---

    def initialize_working_set(self) -> None:
        baseline_dir = self.config.baseline_dir
        if not baseline_dir.is_dir():
            raise ConfigurationError(f"Baseline template directory not found: {baseline_dir}")
        if self.working_dir.exists():
            shutil.rmtree(self.working_dir)
        shutil.copytree(baseline_dir, self.working_dir)

    async def establish_baseline(self) -> float:
        self._require(Phase.UNINITIALIZED)
        console.print("\n[bold blue]Establishing baseline...[/bold blue]")

        self.initialize_working_set()
        corpus_score = await self.evaluate_corpus()
        if corpus_score.score is None:
            raise OptimizationError(
                "Baseline could not be established: generation failed for every test case"
            )

        state = OptimizationState(
            baseline_score=corpus_score.score, current_score=corpus_score.score
        )
        self.tracker.save_baseline(corpus_score)
        self.tracker.save_state(state)
        self.state = state
        self.phase = Phase.BASELINE_ESTABLISHED

        _print_failures(corpus_score)
        console.print(f"[green]Baseline established: {corpus_score.score:.2f}/5.0[/green]\n")
        return corpus_score.score

    def recover_in_flight_round(self) -> bool:
        """Undo a round that was interrupted before it was persisted.

        Returns True if the working set was restored.
        """
        handle = self.backups.find(self.state.current_round + 1)
        if handle is None:
            return False
        console.print(
            f"[yellow]Round {handle.round_number} was interrupted; "
            "restoring its snapshot.[/yellow]"
        )
        self.backups.restore(handle)
        return True

    async def run_round(self, mutation: Mutation) -> Round:
        self._require(Phase.BASELINE_ESTABLISHED, Phase.ROUND_COMPLETED)
        previous_score = self.state.current_score
        if previous_score is None:
            raise RuntimeError("Optimizer state has no current score")

        round_number = self.state.current_round + 1

        console.print(f"[bold]--- Round {round_number}: {mutation.name} ---[/bold]")
        console.print(f"   Target: {mutation.target_criterion}")
        console.print(f"   Change: {mutation.description}")

        handle = self.backups.snapshot(round_number)
        entry_phase = self.phase
        self.phase = Phase.ROUND_IN_PROGRESS
        try:
            round_, corpus_score = await self._apply_and_score(mutation, round_number, previous_score)
            if round_.decision is Decision.DISCARD:
                self.backups.restore(handle)
                console.print("   [dim]Rolled back mutation[/dim]")

            next_state = self.state.advanced(round_)
            self.tracker.save_round(round_, corpus_score)
            self.tracker.save_state(next_state)
        except BaseException:
            # Nothing from this round is committed: put the working set back
            # and leave the optimizer where the round started.
            self._abandon(handle)
            self.phase = entry_phase
            raise

        self.state = next_state
        self.phase = Phase.ROUND_COMPLETED
        if round_.diminishing:
            console.print("[yellow]Diminishing returns detected. Consider stopping.[/yellow]")
        return round_

    async def _apply_and_score(
        self, mutation: Mutation, round_number: int, previous_score: float
    ) -> tuple[Round, CorpusScore | None]:
        new_score: float | None = None
        error: str | None = None
        corpus_score: CorpusScore | None = None

        try:
            apply_mutation(self.working_dir, mutation)
        except EditError as e:
            console.print(f"[red]   Edit failed: {e}[/red]")
            error = str(e)
            reason = RoundReason.EDIT_FAILED
        else:
            corpus_score = await self.evaluate_corpus()
            _print_failures(corpus_score)
            new_score = corpus_score.score
            if new_score is None:
                error = "generation failed for every test case"
                console.print(f"[red]   Scoring aborted: {error}[/red]")
                reason = RoundReason.GENERATION_FAILED
            elif new_score - previous_score > 0:
                reason = RoundReason.IMPROVED
            else:
                reason = RoundReason.NO_IMPROVEMENT

        improvement = new_score - previous_score if new_score is not None else 0.0
        decision = Decision.KEEP if reason is RoundReason.IMPROVED else Decision.DISCARD

        if new_score is not None:
            console.print(f"   Previous: {previous_score:.2f}/5.0")
            console.print(f"   New:      {new_score:.2f}/5.0")
            console.print(f"   Delta:    {improvement:+.2f}")
        colour = "green" if decision is Decision.KEEP else "yellow"
        console.print(f"   Decision: [{colour}]{decision.value.upper()}[/{colour}] ({reason.value})")

        round_ = Round(
            round_number=round_number,
            mutation=mutation,
            previous_score=previous_score,
            new_score=new_score,
            improvement=improvement,
            decision=decision,
            reason=reason,
            timestamp=datetime.now(timezone.utc).isoformat(),
            error=error,
        )
        diminishing = is_diminishing(
            [*self.state.history, round_],
            threshold=self.config.min_improvement,
            window_size=self.config.convergence_window,
        )
        if diminishing:
            round_ = replace(round_, diminishing=True)
        return round_, corpus_score

    async def optimize(self, mutations: Sequence[Mutation]) -> OptimizationState:
        if self.phase is Phase.UNINITIALIZED:
            await self.establish_baseline()
        else:
            self._check_resumed_history(mutations)

        console.print(f"   Max rounds: {self.config.max_rounds}")
        console.print(f"   Min improvement: {self.config.min_improvement}")
        console.print(f"   Test cases: {len(self.corpus)}")
        console.print(f"   Candidate mutations: {len(mutations)}\n")

        for mutation in mutations[self.state.current_round:]:
            if self.state.current_round >= self.config.max_rounds:
                break
            await self.run_round(mutation)

        baseline = self.state.baseline_score
        final = self.state.current_score
        if baseline is None or final is None:
            raise RuntimeError("Optimizer state has no baseline score")

        self.phase = Phase.FINISHED
        self.tracker.save_report(self.state)

        console.print(
            f"\n[bold green]Optimization complete after {self.state.current_round} rounds.[/bold green]"
        )
        console.print(f"   Baseline:    {baseline:.2f}/5.0")
        console.print(f"   Final:       {final:.2f}/5.0")
        console.print(f"   Improvement: {(final - baseline) / baseline * 100:+.1f}%")
        return self.state

    def _check_resumed_history(self, mutations: Sequence[Mutation]) -> None:
        if len(self.state.history) > len(mutations):
            raise ConfigurationError(
                f"Resumed run has {len(self.state.history)} rounds but only "
                f"{len(mutations)} candidate mutations were supplied"
            )
        for round_, mutation in zip(self.state.history, mutations):
            if round_.mutation.name != mutation.name:
                raise ConfigurationError(
                    f"Round {round_.round_number} ran {round_.mutation.name!r} but the "
                    f"candidate list has {mutation.name!r} in that position"
                )

    def _abandon(self, handle: BackupHandle) -> None:
        try:
            self.backups.restore(handle)
        except PersistenceError as e:
            logger.error("Could not roll back interrupted round %d: %s", handle.round_number, e)

    def _require(self, *phases: Phase) -> None:
        if self.phase not in phases:
            expected = ", ".join(p.value for p in phases)
            raise RuntimeError(f"Optimizer is {self.phase.value}; expected one of: {expected}")


def _print_failures(corpus_score: CorpusScore) -> None:
    for sample in corpus_score.failed:
        console.print(f"[red]   Generation failed for {sample.test_case_id}: {sample.error}[/red]")
