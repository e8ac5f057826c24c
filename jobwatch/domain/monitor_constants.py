"""Default limits and cadences for background job monitoring."""

from datetime import timedelta
from typing import Final

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 3.0
"""Period of the shared polling clock.

One clock drives every active job; each tick checks all of them concurrently.
"""

DEFAULT_MAX_JOB_AGE: Final[timedelta] = timedelta(hours=4)
"""Age after which an unfinished job is marked Timeout locally.

Age is measured from registration with the monitor, not from the remote
start time reported by the job.
"""

DEFAULT_MAX_HISTORY_COUNT: Final[int] = 20
"""Number of task records retained for introspection.

Records of jobs that are still active are never evicted, so the history may
temporarily hold more entries than this.
"""

DEFAULT_NOTIFICATION_SPACING_SECONDS: Final[float] = 3.0
"""Minimum delay between two consecutive notification deliveries."""

UNKNOWN_ERROR_MESSAGE: Final[str] = "Unknown error"
