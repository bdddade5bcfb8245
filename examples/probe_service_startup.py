"""
Probe a slowly starting service with the three failure modes.

- assert_that: the check itself failed (AssertionError)
- assume_that: preconditions not met, the test is skipped (unittest.SkipTest)
- require_that: the environment is broken (TimeoutError)

Set NEXTDEED_TIMEOUT_SCALE=3 to stretch all timeouts on a slow machine.
"""

import logging
import threading
import time

from nextdeed import (
    ProbeFailure,
    TimeoutArtifactRecorder,
    TimeoutArtifactsOptions,
    described,
    equal_to,
    probing,
)


class Service:
    def __init__(self, startup_s: float) -> None:
        self.state = "STOPPED"
        threading.Timer(startup_s, self._started).start()

    def _started(self) -> None:
        self.state = "RUNNING"


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    state_of = described(lambda s: s.state, "service state")

    service = Service(startup_s=0.5)
    result = (
        probing(service)
        .within(2.0)
        .with_initial_delay(0.05)
        .decelerate_polling_by(1.5)
        .assert_that(state_of, equal_to("RUNNING"), reason="service should start")
    )
    print("assert_that result:", result)

    recorder = TimeoutArtifactRecorder(TimeoutArtifactsOptions(run_id="startup-example"))
    slow = Service(startup_s=5.0)
    try:
        probing(slow).within(0.3).with_final_grace_period(0.1).on_timeout(recorder).require_that(
            state_of, equal_to("RUNNING"), reason="backend must be up before the suite runs"
        )
    except ProbeFailure as e:
        print(f"{type(e).__name__} ({e.kind}) after {e.consumed_ms}ms:{e}")
        print("Artifacts:", [str(p) for p in recorder.persisted])

    time.sleep(5.0)


if __name__ == "__main__":
    main()
