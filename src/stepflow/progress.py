"""Completion percentage derived from step and subtask state."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .constants import PROGRESS_DECIMALS
from .models import Step, Subtask


@dataclass(frozen=True)
class ProgressSummary:
    total_steps: int
    completed_steps: int
    total_subtasks: int
    completed_subtasks: int
    progress: float


def compute_progress(
    steps: Sequence[Step],
    subtasks_by_step: Mapping[str, Sequence[Subtask]],
) -> ProgressSummary:
    """Return counts and a 0-100 percentage.

    Subtasks dominate: as soon as any step has subtasks, only subtask
    completion counts. Without subtasks, step completion counts. No blending.
    """
    total_steps = len(steps)
    completed_steps = sum(1 for s in steps if s.is_completed)

    total_subtasks = 0
    completed_subtasks = 0
    for step in steps:
        subtasks = subtasks_by_step.get(step.id, ())
        total_subtasks += len(subtasks)
        completed_subtasks += sum(1 for t in subtasks if t.is_completed)

    if total_subtasks > 0:
        raw = completed_subtasks / total_subtasks * 100
    elif total_steps > 0:
        raw = completed_steps / total_steps * 100
    else:
        raw = 0.0

    return ProgressSummary(
        total_steps=total_steps,
        completed_steps=completed_steps,
        total_subtasks=total_subtasks,
        completed_subtasks=completed_subtasks,
        progress=round_half_up(raw, PROGRESS_DECIMALS),
    )


def round_half_up(value: float, decimals: int) -> float:
    scale = 10**decimals
    return math.floor(value * scale + 0.5) / scale
