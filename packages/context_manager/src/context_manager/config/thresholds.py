"""Tuning constants for health scoring, drift, compaction and trimming."""

from __future__ import annotations

# Token estimation
CHARS_PER_TOKEN = 4
TOKEN_PENALTY_DIVISOR = 10_000

# Health score bands (raw score, 0..1)
HEALTH_CRITICAL = 0.30
HEALTH_WARNING = 0.50
HEALTH_GOOD = 0.80

# Penalty weights; they sum to 1.0 so a session maxed out on every factor scores 0.
WEIGHT_DRIFT = 0.35
WEIGHT_ERRORS = 0.30
WEIGHT_LENGTH = 0.20
WEIGHT_ACTIVITY = 0.15

# Activity factor reaches 1.0 after this much idle time
ACTIVITY_STALE_AFTER_SECONDS = 30 * 60

# Recommendation triggers (factor values, 0..1)
DRIFT_RECOMMENDATION = 0.5
ERROR_RATE_RECOMMENDATION = 0.2
LENGTH_RECOMMENDATION = 0.7
IDLE_RECOMMENDATION = 0.5

# Drift
DRIFT_THRESHOLD = 0.7
PHASE_WINDOW_SIZE = 5
MIN_KEYWORD_LENGTH = 3

# Compaction
COMPACT_KEEP_RECENT = 50
COMPACT_THRESHOLD = 100
AUTO_COMPACT_THRESHOLD = 100
COMPACT_DIGEST_MAX_CHARS = 2000

# Output trimming
TRIM_MAX_OUTPUT_LENGTH = 5000
TRIM_SMART_HEAD_RATIO = 0.6

# Monitoring
HEALTH_CHECK_INTERVAL_MS = 60_000
AUTO_SNAPSHOT_HEALTH = 0.5
