"""
Pipeline step selection.

The four stages always run in the same order. A run may be narrowed to a
contiguous range of them, or to a single stage, from the command line. The
selection is computed once at startup by a pure function so it can be tested
without touching the filesystem.
"""

from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union

from .exceptions import ConfigurationError


class Step(str, Enum):
    """Ordered pipeline stages."""

    MERGE = "merge"
    ASSEMBLE = "assemble"
    ALIGN = "align"
    TREE = "tree"


PIPELINE_STEPS: Tuple[Step, ...] = (Step.MERGE, Step.ASSEMBLE, Step.ALIGN, Step.TREE)

StepLike = Union[str, Step]


def parse_step(value: StepLike, flag: str, steps: Sequence[Step] = PIPELINE_STEPS) -> Step:
    """
    Resolve a step name given on the command line.

    Args:
        value: Step name or Step member
        flag: Name of the option the value came from, used in the error message
        steps: Valid steps

    Raises:
        ConfigurationError: If the name is not one of ``steps``
    """
    if isinstance(value, Step) and value in steps:
        return value
    name = str(value).strip().lower()
    for step in steps:
        if step.value == name:
            return step
    valid = ", ".join(step.value for step in steps)
    raise ConfigurationError(
        f"Unknown step '{value}' for --{flag}",
        config_key=flag,
        config_value=value,
        hint=f"Valid steps are: {valid}",
    )


def select_steps(
    steps: Sequence[Step] = PIPELINE_STEPS,
    start: Optional[StepLike] = None,
    stop: Optional[StepLike] = None,
    only: Optional[StepLike] = None,
) -> Tuple[Step, ...]:
    """
    Compute the active steps for a run.

    ``only`` overrides ``start`` and ``stop`` and always yields a single step.
    Otherwise the result is the inclusive slice of ``steps`` from ``start``
    (default: first) to ``stop`` (default: last). All three names are
    validated even when ``only`` makes the range irrelevant, so a typo never
    slips through silently.

    Raises:
        ConfigurationError: On an unknown step name or a start after stop
    """
    steps = tuple(steps)
    start_step = parse_step(start, "start-from-step", steps) if start is not None else None
    stop_step = parse_step(stop, "stop-at-step", steps) if stop is not None else None

    if only is not None:
        return (parse_step(only, "run-only-step", steps),)

    first = steps.index(start_step) if start_step is not None else 0
    last = steps.index(stop_step) if stop_step is not None else len(steps) - 1
    if first > last:
        raise ConfigurationError(
            f"--start-from-step {steps[first].value} comes after --stop-at-step {steps[last].value}",
            config_key="start-from-step",
            config_value=steps[first].value,
            hint="Steps run in the order: " + " -> ".join(step.value for step in steps),
        )
    return steps[first:last + 1]


class StepSelection:
    """Immutable set of active steps in pipeline order."""

    def __init__(self, active: Iterable[Step], steps: Sequence[Step] = PIPELINE_STEPS):
        active = set(active)
        self.steps = tuple(steps)
        self.active = tuple(step for step in self.steps if step in active)

    @classmethod
    def from_flags(
        cls,
        start: Optional[StepLike] = None,
        stop: Optional[StepLike] = None,
        only: Optional[StepLike] = None,
    ) -> "StepSelection":
        return cls(select_steps(PIPELINE_STEPS, start=start, stop=stop, only=only))

    def __contains__(self, step: object) -> bool:
        return step in self.active

    def __iter__(self) -> Iterator[Step]:
        return iter(self.active)

    def __len__(self) -> int:
        return len(self.active)

    @property
    def first(self) -> Step:
        return self.active[0]

    @property
    def skipped(self) -> Tuple[Step, ...]:
        return tuple(step for step in self.steps if step not in self.active)

    def names(self) -> Tuple[str, ...]:
        return tuple(step.value for step in self.active)

    def __repr__(self) -> str:
        return f"StepSelection({', '.join(self.names())})"
