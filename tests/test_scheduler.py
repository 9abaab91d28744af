import pytest

from tbdemic.scheduler import MAX_STEPS_PER_FRAME, UPDATE_INTERVAL_SECONDS, FrameClock, steps_to_run


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.mark.parametrize(
    "elapsed, speed, expected",
    [
        (0.016, 1, 1),
        (0.0, 1, 1),
        (2.5, 1, 2),
        (0.5, 10, 5),
        (10.0, 100, MAX_STEPS_PER_FRAME),
        (1.0, 0.1, 1),
    ],
)
def test_steps_to_run(elapsed, speed, expected):
    assert steps_to_run(elapsed, speed) == expected


def test_steps_to_run_custom_cap():
    assert steps_to_run(60.0, 1, max_steps_per_frame=10) == 10


def _simulate(speed, seconds, max_steps_per_frame=MAX_STEPS_PER_FRAME):
    clock = FakeClock()
    frame_clock = FrameClock(clock, max_steps_per_frame)
    total_steps = 0
    ticks = int(seconds / UPDATE_INTERVAL_SECONDS)
    for _ in range(ticks):
        clock.advance(UPDATE_INTERVAL_SECONDS)
        total_steps += frame_clock.due_steps(speed)
    return total_steps


def test_speed_one_advances_one_day_per_second():
    assert 9 <= _simulate(speed=1, seconds=10) <= 10


def test_speed_ten_advances_ten_times_faster():
    assert 95 <= _simulate(speed=10, seconds=10) <= 100


def test_speed_below_one():
    assert 4 <= _simulate(speed=0.5, seconds=10) <= 5


def test_fast_speeds_are_capped():
    steps_per_second = _simulate(speed=100, seconds=10, max_steps_per_frame=1) / 10

    assert steps_per_second <= 1 / UPDATE_INTERVAL_SECONDS + 1


def test_no_step_is_due_before_a_day_has_elapsed():
    clock = FakeClock()
    frame_clock = FrameClock(clock)

    clock.advance(0.5)
    assert frame_clock.due_steps(1) == 0

    clock.advance(0.5)
    assert frame_clock.due_steps(1) == 1
    assert frame_clock.due_steps(1) == 0


def test_backlog_is_dropped_when_cap_is_hit():
    clock = FakeClock()
    frame_clock = FrameClock(clock, max_steps_per_frame=100)

    clock.advance(5.0)
    assert frame_clock.due_steps(100) == 100
    assert frame_clock.elapsed == 0.0
    assert frame_clock.due_steps(100) == 0


def test_fractional_remainder_is_kept():
    clock = FakeClock()
    frame_clock = FrameClock(clock)

    clock.advance(2.5)
    assert frame_clock.due_steps(1) == 2
    assert frame_clock.elapsed == pytest.approx(0.5)

    clock.advance(0.5)
    assert frame_clock.due_steps(1) == 1


def test_restart_resets_the_baseline():
    clock = FakeClock()
    frame_clock = FrameClock(clock)

    clock.advance(30.0)
    frame_clock.restart()

    assert frame_clock.due_steps(1) == 0
