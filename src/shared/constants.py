"""Application-wide constants.

This module centralizes magic numbers that are used across multiple
modules. Values that need to be configurable at runtime should go in
config.py instead.
"""

# ===================
# Scoring
# ===================

# Points shared by all scorable questions of one exam
TOTAL_POINTS = 100

# Self-assessment mastery scale (0 = completely wrong, 4 = fully correct)
MIN_MASTERY_LEVEL = 0
MAX_MASTERY_LEVEL = 4

# Lower bound of the "partially correct" bucket in the review summary
PARTIAL_MASTERY_LEVEL = 2


# ===================
# Timers
# ===================

# Default tick interval for elapsed time and per-question countdowns
DEFAULT_TICK_SECONDS = 1.0

# Countdown urgency thresholds (share of the time limit remaining)
TIMER_WARNING_RATIO = 0.5
TIMER_CRITICAL_RATIO = 0.2


# ===================
# Display
# ===================

# Shown in place of an empty learner answer
BLANK_ANSWER_MARK = "–"

# Separator between steps in a model answer
STEP_SEPARATOR = " → "

# Base URL for embedded videos
VIDEO_EMBED_BASE_URL = "https://www.youtube.com/embed/"
