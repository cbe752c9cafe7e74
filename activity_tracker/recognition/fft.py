"""
In-place radix-2 decimation-in-time FFT.

Same transform the feature extractor was trained with: twiddle tables are
built once per size, the bit-reversal permutation is applied in place, and
each butterfly stage works on numpy slices.
"""

import math

import numpy as np


class FFT:
    """
    Fixed-size FFT without per-call allocation of lookup tables.

    Usage:
        fft = FFT(16)
        re = np.array(block, dtype=np.float64)
        im = np.zeros(16)
        fft.fft(re, im)   # re/im now hold the coefficients
    """

    def __init__(self, n):
        if n < 2 or n & (n - 1):
            raise ValueError(f"FFT length must be power of 2, got {n}")
        self.n = n
        self.m = n.bit_length() - 1

        k = np.arange(n // 2)
        self.cos = np.cos(-2 * math.pi * k / n)
        self.sin = np.sin(-2 * math.pi * k / n)

        self.bit_reverse = np.array([self._reverse(i) for i in range(n)], dtype=np.intp)

    def _reverse(self, i):
        r = 0
        for _ in range(self.m):
            r = (r << 1) | (i & 1)
            i >>= 1
        return r

    def fft(self, x, y):
        """
        Transform real part x and imaginary part y in place.

        Args:
            x (np.ndarray): float64 real part, length n
            y (np.ndarray): float64 imaginary part, length n
        """
        if x.shape != (self.n,) or y.shape != (self.n,):
            raise ValueError(f"FFT expects arrays of length {self.n}")

        x[:] = x[self.bit_reverse]
        y[:] = y[self.bit_reverse]

        n1 = 1
        for level in range(self.m):
            n2 = n1 * 2
            step = self.n // n2
            c = self.cos[: n1 * step: step]
            s = self.sin[: n1 * step: step]

            for start in range(0, self.n, n2):
                top = slice(start, start + n1)
                bottom = slice(start + n1, start + n2)

                t1 = c * x[bottom] - s * y[bottom]
                t2 = s * x[bottom] + c * y[bottom]
                x[bottom] = x[top] - t1
                y[bottom] = y[top] - t2
                x[top] += t1
                y[top] += t2

            n1 = n2
