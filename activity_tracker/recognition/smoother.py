"""
Activity label smoothing and duration-weighted finalization.

Two views of the same prediction stream:

- live: the mode of the last K predictions (ties go to the label seen most
  recently), which stops single-block misclassifications from flickering
- final: how long each label was the live label, so a session that was
  one long run with a handful of short walking blips finalizes as Running
"""

import logging
import time
from collections import Counter, deque

from ..models import Activity

logger = logging.getLogger(__name__)


class ActivitySmoother:
    """
    Args:
        window_size (int): K, number of recent predictions in the vote
        clock (callable): returns wall-clock seconds (time.time by default)
        initial (Activity): live label before the first prediction arrives
    """

    def __init__(self, window_size=10, clock=time.time, initial=Activity.STANDING):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window = deque(maxlen=window_size)
        self.clock = clock

        self.smoothed = Activity(initial)
        self.last_change_ms = self._now_ms()
        self.durations_ms = {}
        self.final = None

    def _now_ms(self):
        return int(round(self.clock() * 1000))

    def push(self, prediction):
        """Add one prediction and return the smoothed label."""
        prediction = Activity(prediction)
        self.window.append(prediction)

        label = self._mode()
        if label != self.smoothed:
            now = self._now_ms()
            self._credit(self.smoothed, now)
            logger.debug(f"Activity change: {self.smoothed.label} → {label.label}")
            self.smoothed = label
        return self.smoothed

    def _mode(self):
        counts = Counter(self.window)
        best = max(counts.values())
        # Walk backwards so ties resolve to the most recent label
        for label in reversed(self.window):
            if counts[label] == best:
                return label

    def _credit(self, label, now_ms):
        elapsed = max(0, now_ms - self.last_change_ms)
        self.durations_ms[label] = self.durations_ms.get(label, 0) + elapsed
        self.last_change_ms = now_ms

    def finalize(self):
        """Flush the pending interval and return the label held longest.

        Only the first call flushes; later calls return the same answer.
        """
        if self.final is not None:
            return self.final

        self._credit(self.smoothed, self._now_ms())
        # Ties go to the current live label, then to the lower id
        self.final = max(
            self.durations_ms,
            key=lambda label: (self.durations_ms[label], label == self.smoothed, -int(label)),
        )

        summary = ", ".join(
            f"{label.label}: {ms / 1000.0:.1f}s"
            for label, ms in sorted(self.durations_ms.items(), key=lambda kv: -kv[1])
        )
        logger.info(f"Activity durations: {summary}; dominant: {self.final.label}")
        return self.final

    def get_tally(self):
        """Copy of the duration tally (ms per activity)."""
        return dict(self.durations_ms)
