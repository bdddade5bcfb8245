"""nextdeed timing constants."""

# Shortest sleep between two polls, in milliseconds.
MINIMUM_SLEEP_TIME_MS = 1

# Engine defaults. A zero initial delay keeps unit tests fast; the delay
# never drops below the cost of one evaluation anyway.
DEFAULT_TIMEOUT_MS = 0
DEFAULT_INITIAL_DELAY_MS = 0
DEFAULT_GRACE_PERIOD_MS = 0
DEFAULT_DECELERATION_FACTOR = 1.1

# Defaults for matchers that wait (wait_for_match).
WAIT_FOR_MATCH_INITIAL_DELAY_MS = 10
WAIT_FOR_MATCH_GRACE_PERIOD_MS = 100

# Environment variables read by ProbeSettings.from_env().
ENV_PREFIX = "NEXTDEED_"
ENV_TIMEOUT_MS = ENV_PREFIX + "TIMEOUT_MS"
ENV_INITIAL_DELAY_MS = ENV_PREFIX + "INITIAL_DELAY_MS"
ENV_GRACE_PERIOD_MS = ENV_PREFIX + "GRACE_PERIOD_MS"
ENV_DECELERATION_FACTOR = ENV_PREFIX + "DECELERATION_FACTOR"
ENV_TIMEOUT_SCALE = ENV_PREFIX + "TIMEOUT_SCALE"
