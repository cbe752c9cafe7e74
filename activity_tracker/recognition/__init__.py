"""
Accelerometer activity recognition.

Pipeline for one block of B magnitudes:

    FeatureExtractor.extract(block)   -> B FFT magnitudes + peak
    ActivityClassifier.classify(vec)  -> Standing / Walking / Running
    ActivitySmoother.push(label)      -> majority vote over the last K labels

ActivityRecognizer chains the three for a stream of magnitudes.

Example usage:
    recognizer = ActivityRecognizer(config)
    for magnitude in stream:
        label = recognizer.feed(magnitude)   # None until a block completes
    dominant = recognizer.finalize()
"""

from .classifier import ActivityClassifier
from .features import FeatureExtractor
from .fft import FFT
from .recognizer import ActivityRecognizer
from .smoother import ActivitySmoother

__all__ = [
    'ActivityClassifier',
    'ActivityRecognizer',
    'ActivitySmoother',
    'FeatureExtractor',
    'FFT',
]
