"""Contract constants for the Delphi price feed.

Values are fixed-point integers: ``MIN_VALUE`` of 100 is $0.01 and
``MAX_VALUE`` of 100,000,000 is $10,000 (hundredths of a cent).
Timestamps are microseconds.
"""

# Number of observations retained in the window.
CAPACITY = 21

MIN_VALUE = 100
MAX_VALUE = 100_000_000

# 55 seconds rather than 60 so periodic reporters can jitter.
COOLDOWN = 55_000_000

# Trimmed mean: skip the lowest 5, average the next 9.
TRIM_SKIP_LOWEST = 5
TRIM_TAKE = 9

MAX_SEQUENCE = 2**64 - 1

# Only this many validator set entries are considered.
MAX_ACTIVE_VALIDATORS = 21
