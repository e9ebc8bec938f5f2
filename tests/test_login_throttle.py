from datetime import datetime, timedelta, timezone

from carwash.services.auth_service import LoginThrottle

START = datetime(2025, 3, 13, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = START

    def __call__(self):
        return self.now


def test_lockout_engages_on_the_third_failure_and_expires():
    clock = Clock()
    throttle = LoginThrottle(clock=clock)

    assert not throttle.record_failure("ana@empresa.pt")
    assert not throttle.record_failure("ana@empresa.pt")
    assert throttle.record_failure("ana@empresa.pt")
    assert throttle.seconds_left("ana@empresa.pt") == 30

    clock.now = START + timedelta(seconds=29, milliseconds=500)
    assert throttle.seconds_left("ana@empresa.pt") == 1

    clock.now = START + timedelta(seconds=30)
    assert throttle.seconds_left("ana@empresa.pt") == 0
    # The counter starts over after the lockout expires.
    assert not throttle.record_failure("ana@empresa.pt")


def test_emails_are_counted_separately():
    throttle = LoginThrottle(max_failures=1, clock=Clock())
    throttle.record_failure("ana@empresa.pt")
    assert throttle.seconds_left("rui@empresa.pt") == 0


def test_reset_clears_failures():
    throttle = LoginThrottle(clock=Clock())
    throttle.record_failure("ana@empresa.pt")
    throttle.record_failure("ana@empresa.pt")
    throttle.reset("ana@empresa.pt")
    assert not throttle.record_failure("ana@empresa.pt")
    assert not throttle.record_failure("ana@empresa.pt")
