"""
Decision-tree activity classifier.

The tree walk itself (tree.evaluate) is pure. ActivityClassifier wraps it
with input validation and remembers the last good label so a malformed
vector never breaks the recognition worker.
"""

import logging

import numpy as np

from ..models import Activity
from . import tree

logger = logging.getLogger(__name__)


class ActivityClassifier:
    """
    Args:
        decision_tree: root node (defaults to the shipped ACTIVITY_TREE)
        feature_count: expected feature-vector length
        initial: label returned until the first successful classification
    """

    def __init__(self, decision_tree=tree.ACTIVITY_TREE, feature_count=tree.FEATURE_COUNT,
                 initial=Activity.STANDING):
        self.tree = decision_tree
        self.feature_count = feature_count
        self.last_label = Activity(initial)
        self.rejected = 0

        used = tree.tree_features(decision_tree)
        if used and max(used) >= feature_count:
            raise ValueError(f"Tree reads feature {max(used)} but vectors hold {feature_count}")

    def classify(self, features):
        """Return the activity for one feature vector, or the previous label if it is unusable."""
        try:
            vector = np.asarray(features, dtype=np.float64)
        except (TypeError, ValueError):
            return self._reject("non-numeric feature vector")

        if vector.shape != (self.feature_count,):
            return self._reject(f"expected {self.feature_count} features, got shape {vector.shape}")
        if not np.isfinite(vector).all():
            return self._reject("feature vector holds NaN/inf")

        self.last_label = tree.evaluate(self.tree, vector)
        return self.last_label

    def _reject(self, reason):
        self.rejected += 1
        if self.rejected <= 3 or self.rejected % 100 == 0:
            logger.warning(f"Classifier skipped input ({reason}), keeping {self.last_label.label}")
        return self.last_label
