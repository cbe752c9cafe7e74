"""
Pre-trained activity decision tree.

Trained offline (J48) on 16-sample magnitude blocks, so it expects 17
features: 16 FFT magnitudes followed by the block peak. Each Split sends
values <= threshold left and everything else right.
"""

from dataclasses import dataclass
from typing import Union

from ..models import Activity

FEATURE_COUNT = 17


@dataclass(frozen=True)
class Leaf:
    activity: Activity


@dataclass(frozen=True)
class Split:
    feature: int
    threshold: float
    le: "Node"
    gt: "Node"


Node = Union[Leaf, Split]


ACTIVITY_TREE: Node = Split(
    feature=0, threshold=13.390311,
    le=Leaf(Activity.STANDING),
    gt=Split(
        feature=16, threshold=14.534508,
        le=Split(
            feature=4, threshold=14.034383,
            le=Split(
                feature=7, threshold=4.804712,
                le=Leaf(Activity.WALKING),
                gt=Leaf(Activity.RUNNING),
            ),
            gt=Leaf(Activity.WALKING),
        ),
        gt=Leaf(Activity.RUNNING),
    ),
)


def tree_features(node):
    """Set of feature indices the tree reads."""
    if isinstance(node, Leaf):
        return set()
    return {node.feature} | tree_features(node.le) | tree_features(node.gt)


def evaluate(node, features):
    """Walk the tree for one feature vector. Callers validate the vector."""
    while isinstance(node, Split):
        node = node.le if features[node.feature] <= node.threshold else node.gt
    return node.activity
