"""
Spectral feature extraction for activity recognition.

A block of B acceleration magnitudes becomes a feature vector of B + 1
values:

    features[0:B]  magnitudes of the B FFT coefficients (frequency domain)
    features[B]    peak magnitude of the block (time domain)
"""

import numpy as np

from .fft import FFT


class FeatureExtractor:
    """Pure block → feature-vector transform for a fixed block size."""

    def __init__(self, block_size=16):
        self.block_size = block_size
        self.feature_size = block_size + 1
        self._fft = FFT(block_size)

    def extract(self, block):
        """
        Args:
            block: sequence of exactly block_size magnitudes

        Returns:
            np.ndarray: float64 feature vector of length block_size + 1

        Raises:
            ValueError: if the block has the wrong length
        """
        re = np.array(block, dtype=np.float64)
        if re.shape != (self.block_size,):
            raise ValueError(f"Block size must be {self.block_size}, got {re.size}")

        peak = re.max()
        im = np.zeros(self.block_size)
        self._fft.fft(re, im)

        features = np.empty(self.feature_size)
        features[: self.block_size] = np.hypot(re, im)
        features[self.block_size] = peak
        return features


def calculate_magnitude(x, y, z):
    """Euclidean norm of a 3-axis reading."""
    return float(np.sqrt(x * x + y * y + z * z))
