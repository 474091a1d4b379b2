"""
Draw Engine and Draw Session.

This module picks raffle winners. It has no knowledge of profiles or the
cache; the API layer enriches the winner afterwards.

Key Components:
- `draw`: One uniform random pick from a non-empty participant sequence.
- `HighlightSequence`: The decorative "spinning" picks shown while the draw is
  in suspense. It is a lazy, finite iterable; every iteration starts a fresh
  run of `ceil(duration / step)` independent uniform picks.
- `DrawSession`: The state machine around one raffle screen:

      IDLE -> SUSPENSE -> WINNER_SELECTED -> IDLE        (reset)
                                          -> SUSPENSE    (redraw)

  The suspense phase is a cooperative timed loop. Each tick sleeps until its
  scheduled instant, measured from the start of the draw, so slow callbacks
  do not stretch the total duration. Only one draw may tick at a time.

The winner is drawn after the last tick and independently of it; the last
highlighted participant is not a preview of the result.
"""

import asyncio
import inspect
import math
import random
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple

from core.exceptions import DrawInProgressError, InvalidArgumentError
from core.logging_config import get_logger
from core.models import Participant
from core.validation import validate_draw_timing

logger = get_logger(__name__)

DEFAULT_DURATION_MS = 7000
DEFAULT_STEP_MS = 100

_system_random = random.SystemRandom()

HighlightCallback = Callable[[Participant], Any]


def _require_participants(participants: Sequence[Participant]) -> Tuple[Participant, ...]:
    participants = tuple(participants)
    if not participants:
        raise InvalidArgumentError(
            "participants", 0, "At least one participant is required to draw"
        )
    return participants


def draw(
    participants: Sequence[Participant], rng: Optional[random.Random] = None
) -> Participant:
    """Pick one participant uniformly at random"""
    participants = _require_participants(participants)
    rng = rng or _system_random
    return participants[rng.randrange(len(participants))]


class HighlightSequence:
    """Restartable, finite sequence of random highlight picks"""

    def __init__(
        self,
        participants: Sequence[Participant],
        duration_ms: int = DEFAULT_DURATION_MS,
        step_ms: int = DEFAULT_STEP_MS,
        rng: Optional[random.Random] = None,
    ):
        validate_draw_timing(duration_ms, step_ms)
        self.participants = _require_participants(participants)
        self.duration_ms = duration_ms
        self.step_ms = step_ms
        self.rng = rng or _system_random

    def __len__(self) -> int:
        return math.ceil(self.duration_ms / self.step_ms)

    def __iter__(self) -> Iterator[Participant]:
        size = len(self.participants)
        for _ in range(len(self)):
            yield self.participants[self.rng.randrange(size)]


class DrawState(str, Enum):
    IDLE = "idle"
    SUSPENSE = "suspense"
    WINNER_SELECTED = "winner_selected"


class DrawSession:
    """One raffle screen: suspense ticks followed by a winner"""

    def __init__(
        self,
        duration_ms: int = DEFAULT_DURATION_MS,
        step_ms: int = DEFAULT_STEP_MS,
        rng: Optional[random.Random] = None,
    ):
        validate_draw_timing(duration_ms, step_ms)
        self.duration_ms = duration_ms
        self.step_ms = step_ms
        self.rng = rng or _system_random

        self.state = DrawState.IDLE
        self.current_highlight: Optional[Participant] = None
        self.winner: Optional[Participant] = None
        self.ticks = 0
        self.total_ticks = 0
        self.participant_count = 0
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state is DrawState.SUSPENSE

    def _prepare(
        self, participants: Sequence[Participant], duration_ms: Optional[int]
    ) -> Tuple[HighlightSequence, int]:
        if self.is_running:
            raise DrawInProgressError()

        sequence = HighlightSequence(
            participants,
            duration_ms=self.duration_ms if duration_ms is None else duration_ms,
            step_ms=self.step_ms,
            rng=self.rng,
        )

        self._generation += 1
        self.state = DrawState.SUSPENSE
        self.winner = None
        self.current_highlight = None
        self.ticks = 0
        self.total_ticks = len(sequence)
        self.participant_count = len(sequence.participants)
        logger.info(
            f"Draw started with {self.participant_count} participants "
            f"({sequence.duration_ms} ms suspense)"
        )
        return sequence, self._generation

    async def run(
        self,
        participants: Sequence[Participant],
        on_highlight: Optional[HighlightCallback] = None,
        duration_ms: Optional[int] = None,
    ) -> Participant:
        """Run the suspense phase in the current task and return the winner"""
        sequence, generation = self._prepare(participants, duration_ms)
        self._task = asyncio.current_task()
        return await self._run(sequence, generation, on_highlight)

    def start(
        self,
        participants: Sequence[Participant],
        on_highlight: Optional[HighlightCallback] = None,
        duration_ms: Optional[int] = None,
    ) -> asyncio.Task:
        """Start a draw in a background task. Must be called inside a running loop."""
        sequence, generation = self._prepare(participants, duration_ms)
        self._task = asyncio.create_task(self._run(sequence, generation, on_highlight))
        return self._task

    async def _run(
        self,
        sequence: HighlightSequence,
        generation: int,
        on_highlight: Optional[HighlightCallback],
    ) -> Participant:
        loop = asyncio.get_running_loop()
        started = loop.time()
        step = sequence.step_ms / 1000

        try:
            for index, pick in enumerate(sequence):
                if generation != self._generation:
                    raise asyncio.CancelledError()
                self.current_highlight = pick
                self.ticks = index + 1
                if on_highlight is not None:
                    result = on_highlight(pick)
                    if inspect.isawaitable(result):
                        await result
                deadline = started + (index + 1) * step
                await asyncio.sleep(max(0.0, deadline - loop.time()))
        except asyncio.CancelledError:
            if generation == self._generation:
                self._reset_state()
            logger.info("Draw cancelled during suspense")
            raise

        if generation != self._generation:
            # cancelled between the last tick and now
            raise asyncio.CancelledError()

        winner = draw(sequence.participants, self.rng)
        self.current_highlight = None
        self.winner = winner
        self.state = DrawState.WINNER_SELECTED
        logger.info(f"Winner selected: {winner.username} (id {winner.id})")
        return winner

    def _reset_state(self) -> None:
        self.state = DrawState.IDLE
        self.current_highlight = None
        self.ticks = 0

    def cancel(self) -> bool:
        """Stop a ticking draw. Returns False when nothing was running."""
        if not self.is_running:
            return False

        self._generation += 1
        task, self._task = self._task, None
        self._reset_state()
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel a ticking draw and wait for its task to finish"""
        task = self._task
        self.cancel()
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None

    def reset(self) -> None:
        self.cancel()
        self._reset_state()
        self.winner = None
        self.total_ticks = 0
        self.participant_count = 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "currentHighlight": self.current_highlight,
            "winner": self.winner,
            "ticks": self.ticks,
            "totalTicks": self.total_ticks,
            "participantCount": self.participant_count,
            "stepMs": self.step_ms,
        }
