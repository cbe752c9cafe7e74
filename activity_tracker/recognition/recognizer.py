"""
Block assembly: magnitudes in, smoothed activity labels out.
"""

import logging
import time

from ..config import DEFAULT_CONFIG
from ..models import Activity
from .classifier import ActivityClassifier
from .features import FeatureExtractor
from .smoother import ActivitySmoother

logger = logging.getLogger(__name__)


class ActivityRecognizer:
    """
    Collects non-overlapping blocks of block_size magnitudes and runs each
    full block through FeatureExtractor → ActivityClassifier → ActivitySmoother.
    """

    def __init__(self, config=DEFAULT_CONFIG, clock=time.time, initial=Activity.STANDING):
        self.extractor = FeatureExtractor(config.block_size)
        self.classifier = ActivityClassifier(feature_count=self.extractor.feature_size, initial=initial)
        self.smoother = ActivitySmoother(config.smoothing_window, clock=clock, initial=initial)
        self.block = []
        self.blocks_classified = 0
        self.blocks_skipped = 0

    def feed(self, magnitude):
        """Add one magnitude; returns the smoothed label when a block completes, else None."""
        self.block.append(magnitude)
        if len(self.block) < self.extractor.block_size:
            return None

        block, self.block = self.block, []
        try:
            features = self.extractor.extract(block)
        except (TypeError, ValueError) as e:
            self.blocks_skipped += 1
            logger.warning(f"Skipping malformed block: {e}")
            return None

        prediction = self.classifier.classify(features)
        self.blocks_classified += 1
        if self.blocks_classified <= 30 or self.blocks_classified % 50 == 0:
            logger.debug(f"Block #{self.blocks_classified}: peak={features[-1]:.2f} → {prediction.label}")
        return self.smoother.push(prediction)

    @property
    def smoothed(self):
        return self.smoother.smoothed

    def finalize(self):
        return self.smoother.finalize()
