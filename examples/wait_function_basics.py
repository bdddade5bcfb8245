"""
Build a reusable WaitFunction and watch its polling cadence.
"""

import logging
import random

from nextdeed import WaitTimeoutError, all_of, greater_than, less_than, wait_for


def read_queue_depth(queue_name: str) -> int:
    return random.randint(0, 20)


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s")

    drained = (
        wait_for(read_queue_depth)
        .to_fulfill(all_of(greater_than(-1), less_than(3)))
        .within_ms(1500)
        .with_initial_delay_ms(20)
        .and_()
        .decelerate_polling_by(1.3)
        .build()
    )

    for queue in ("orders", "invoices"):
        try:
            print(queue, "depth:", drained(queue))
        except WaitTimeoutError as e:
            print(e)


if __name__ == "__main__":
    main()
