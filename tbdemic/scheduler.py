"""
Wall-clock pacing of simulation steps.

Pacing lives here and not in the engine: the engine advances one day per ``step`` whatever the
speed, the host asks this module how many steps a timer tick should run.
"""
import math
from typing import Callable

UPDATE_INTERVAL_SECONDS = 1 / 60
MAX_STEPS_PER_FRAME = 100


def steps_to_run(
    elapsed_seconds: float, speed: float, max_steps_per_frame: int = MAX_STEPS_PER_FRAME
) -> int:
    """
    Number of steps a tick should run: floor(elapsed * speed) clamped to [1, max_steps_per_frame].
    """
    steps = math.floor(elapsed_seconds * speed)
    return max(1, min(max_steps_per_frame, steps))


class FrameClock:
    """
    Tracks wall time between ticks. At speed 1 one simulated day is due per wall-clock second.

    :param clock:
        Monotonic time source in seconds.

    :param max_steps_per_frame:
        Cap on the steps of one tick. When the cap is hit the backlog is dropped.
    """

    def __init__(self, clock: Callable[[], float], max_steps_per_frame: int = MAX_STEPS_PER_FRAME):
        self._clock = clock
        self.max_steps_per_frame = max_steps_per_frame
        self._baseline = clock()

    def restart(self) -> None:
        self._baseline = self._clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._baseline

    def due_steps(self, speed: float) -> int:
        """
        Steps due now, or 0 if less than one simulated day has elapsed. The baseline advances by
        the time the returned steps account for.
        """
        now = self._clock()
        elapsed = now - self._baseline
        if elapsed * speed < 1.0:
            return 0

        steps = steps_to_run(elapsed, speed, self.max_steps_per_frame)
        if steps >= self.max_steps_per_frame:
            self._baseline = now
        else:
            self._baseline += steps / speed
        return steps
