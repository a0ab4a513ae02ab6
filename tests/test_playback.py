from scholar.live.playback import PlaybackScheduler


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_slots_are_gapless_and_ordered():
    clock = FakeClock(10.0)
    sched = PlaybackScheduler(clock)

    slots = [sched.schedule(d) for d in (0.5, 0.25, 1.0)]

    assert slots[0].start == 10.0
    for prev, nxt in zip(slots, slots[1:]):
        assert nxt.start == prev.end
    assert slots[-1].end == 11.75


def test_late_buffer_starts_now_not_in_the_past():
    clock = FakeClock(0.0)
    sched = PlaybackScheduler(clock)
    sched.schedule(1.0)

    clock.now = 5.0
    slot = sched.schedule(0.5)

    assert slot.start == 5.0


def test_pending_counts_unfinished_slots():
    clock = FakeClock(0.0)
    sched = PlaybackScheduler(clock)
    sched.schedule(1.0)
    sched.schedule(1.0)

    assert sched.pending == 2
    clock.now = 1.0
    assert sched.pending == 1
    clock.now = 2.5
    assert sched.is_idle()


def test_reset_drops_everything():
    clock = FakeClock(0.0)
    sched = PlaybackScheduler(clock)
    sched.schedule(3.0)

    sched.reset()

    assert sched.is_idle()
    assert sched.schedule(1.0).start == 0.0
