"""Outcome, checkpoint and scenario result types.

Failure is carried as data: primitives return ``Ok`` or ``Failed``, assertions
return an ``Observation`` and a ``ScenarioResult`` collects checkpoints in the
order they were evaluated. Only ``FixtureError`` is ever raised.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


class FailureKind(str, enum.Enum):
    FIXTURE = "fixture"
    RESOLUTION = "resolution"
    INTERACTION = "interaction"
    TIMEOUT = "timeout"
    ASSERTION = "assertion"


class FixtureError(Exception):
    """Raised when a scenario precondition (user, session) cannot be created."""

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        text = super().__str__()
        if self.status is not None:
            text = f"{text}: {self.status} {self.body[:200]}".rstrip()
        return text


@dataclass(frozen=True)
class Ok:
    action: str
    target: str
    detail: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    action: str
    target: str
    kind: FailureKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


ActionOutcome = Union[Ok, Failed]


@dataclass(frozen=True)
class Observation:
    """What a predicate saw when it was evaluated."""

    passed: bool
    predicate: str
    observed: str = ""
    kind: FailureKind = FailureKind.ASSERTION


def outcome_observation(outcome: ActionOutcome, predicate: str) -> Observation:
    """Turn a primitive's outcome into an observation for a checkpoint."""
    if outcome.ok:
        return Observation(True, predicate, outcome.detail)
    return Observation(False, predicate, f"{outcome.action}({outcome.target}): {outcome.message}", outcome.kind)


@dataclass(frozen=True)
class Checkpoint:
    name: str
    passed: bool
    predicate: str
    observed: str = ""
    kind: Optional[FailureKind] = None

    def describe(self) -> str:
        if self.passed:
            return f"PASS  {self.name}"
        return (
            f"FAIL  {self.name} [{self.kind.value if self.kind else 'unknown'}]\n"
            f"      predicate: {self.predicate}\n"
            f"      observed:  {self.observed}"
        )


@dataclass
class ScenarioResult:
    name: str
    checkpoints: List[Checkpoint] = field(default_factory=list)
    failed_actions: List[Failed] = field(default_factory=list)
    fatal: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    def check(self, name: str, observation: Observation) -> bool:
        """Append a checkpoint built from ``observation`` and return whether it passed."""
        checkpoint = Checkpoint(
            name=name,
            passed=observation.passed,
            predicate=observation.predicate,
            observed=observation.observed,
            kind=None if observation.passed else observation.kind,
        )
        self.checkpoints.append(checkpoint)
        if checkpoint.passed:
            logger.info("[%s] checkpoint passed: %s", self.name, name)
        else:
            logger.warning(
                "[%s] checkpoint failed: %s (%s; observed %r)",
                self.name, name, observation.predicate, observation.observed,
            )
        return checkpoint.passed

    def fail(self, name: str, predicate: str, observed: str, kind: FailureKind) -> bool:
        return self.check(name, Observation(False, predicate, observed, kind))

    def attach_actions(self, outcomes: List[ActionOutcome]) -> None:
        """Keep failed primitive outcomes as diagnostics for the report."""
        self.failed_actions.extend(outcome for outcome in outcomes if not outcome.ok)

    def abort(self, error: FixtureError) -> None:
        self.fatal = str(error)
        self.checkpoints.append(
            Checkpoint(
                name="fixture",
                passed=False,
                predicate="scenario preconditions created",
                observed=str(error),
                kind=FailureKind.FIXTURE,
            )
        )
        logger.error("[%s] fixture error, scenario aborted: %s", self.name, error)

    def finish(self) -> "ScenarioResult":
        if self.finished_at is None:
            self.finished_at = time.monotonic()
        return self

    @property
    def passed(self) -> bool:
        return self.fatal is None and bool(self.checkpoints) and all(c.passed for c in self.checkpoints)

    @property
    def failures(self) -> List[Checkpoint]:
        return [c for c in self.checkpoints if not c.passed]

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def report(self) -> str:
        status = "PASSED" if self.passed else "FAILED"
        lines = [f"Scenario '{self.name}': {status} ({self.duration:.1f}s)"]
        if not self.checkpoints:
            lines.append("  (no checkpoints evaluated)")
        for checkpoint in self.checkpoints:
            lines.extend("  " + line for line in checkpoint.describe().splitlines())
        if self.failed_actions:
            lines.append("  actions that did not complete:")
            for failed in self.failed_actions:
                lines.append(f"    {failed.action}({failed.target}) [{failed.kind.value}] {failed.message}")
        return "\n".join(lines)
