import numpy as np
import pytest

from activity_tracker.models import Activity
from activity_tracker.recognition import (
    ActivityClassifier,
    ActivityRecognizer,
    ActivitySmoother,
    FeatureExtractor,
    FFT,
)
from activity_tracker.recognition import tree
from activity_tracker.recognition.features import calculate_magnitude

SPIKE = [20.0] + [0.0] * 15      # DC 20, peak 20
CONSTANT = [1.0] * 16            # DC 16, peak 1, no other energy
STILL = [0.0] * 16


# ---------------------------------------------------------------- FFT / features

@pytest.mark.parametrize("n", [2, 8, 16, 64])
def test_fft_matches_numpy(n):
    rng = np.random.default_rng(n)
    signal = rng.normal(size=n)
    re = signal.copy()
    im = np.zeros(n)
    FFT(n).fft(re, im)

    expected = np.fft.fft(signal)
    assert np.allclose(re, expected.real)
    assert np.allclose(im, expected.imag)


@pytest.mark.parametrize("n", [0, 1, 3, 12])
def test_fft_rejects_non_power_of_two(n):
    with pytest.raises(ValueError):
        FFT(n)


def test_extract_layout_and_determinism():
    extractor = FeatureExtractor(16)
    block = list(np.linspace(0.0, 3.0, 16))
    first = extractor.extract(block)
    second = extractor.extract(block)

    assert first.shape == (17,)
    assert first.dtype == np.float64
    assert np.array_equal(first, second)
    assert np.allclose(first[:16], np.abs(np.fft.fft(block)))
    assert first[16] == pytest.approx(3.0)


def test_extract_does_not_modify_input():
    block = np.arange(16, dtype=np.float64)
    FeatureExtractor(16).extract(block)
    assert np.array_equal(block, np.arange(16))


def test_extract_wrong_length():
    with pytest.raises(ValueError):
        FeatureExtractor(16).extract([1.0] * 15)


def test_calculate_magnitude():
    assert calculate_magnitude(3.0, 4.0, 12.0) == pytest.approx(13.0)


# ---------------------------------------------------------------- classifier

def features_with(**values):
    vector = np.zeros(tree.FEATURE_COUNT)
    for key, value in values.items():
        vector[int(key[1:])] = value
    return vector


@pytest.mark.parametrize("vector, expected", [
    (features_with(f0=10.0), Activity.STANDING),
    (features_with(f0=20.0, f16=15.0), Activity.RUNNING),
    (features_with(f0=20.0, f16=10.0, f4=15.0), Activity.WALKING),
    (features_with(f0=20.0, f16=10.0, f4=1.0, f7=4.0), Activity.WALKING),
    (features_with(f0=20.0, f16=10.0, f4=1.0, f7=5.0), Activity.RUNNING),
])
def test_tree_paths(vector, expected):
    assert ActivityClassifier().classify(vector) is expected


def test_threshold_goes_left():
    assert tree.evaluate(tree.ACTIVITY_TREE, features_with(f0=13.390311)) is Activity.STANDING


def test_tree_reads_expected_features():
    assert tree.tree_features(tree.ACTIVITY_TREE) == {0, 4, 7, 16}


def test_classify_is_deterministic():
    classifier = ActivityClassifier()
    vector = FeatureExtractor(16).extract(SPIKE)
    assert {classifier.classify(vector) for _ in range(5)} == {Activity.RUNNING}


@pytest.mark.parametrize("bad", [
    np.zeros(16),
    np.full(17, np.nan),
    [None] * 17,
    "not a vector",
])
def test_bad_input_returns_previous_label(bad):
    classifier = ActivityClassifier()
    classifier.classify(features_with(f0=20.0, f16=15.0))
    assert classifier.classify(bad) is Activity.RUNNING
    assert classifier.rejected == 1


def test_tree_larger_than_vector_is_refused():
    with pytest.raises(ValueError):
        ActivityClassifier(feature_count=8)


# ---------------------------------------------------------------- smoother

def test_smoothed_label_is_mode(clock):
    smoother = ActivitySmoother(window_size=5, clock=clock)
    for label in [Activity.WALKING, Activity.WALKING, Activity.RUNNING]:
        smoother.push(label)
    assert smoother.smoothed is Activity.WALKING


def test_tie_goes_to_most_recent(clock):
    smoother = ActivitySmoother(window_size=4, clock=clock)
    assert smoother.push(Activity.WALKING) is Activity.WALKING
    assert smoother.push(Activity.RUNNING) is Activity.RUNNING
    assert smoother.push(Activity.WALKING) is Activity.WALKING


def test_window_forgets_old_predictions(clock):
    smoother = ActivitySmoother(window_size=3, clock=clock)
    for label in [Activity.RUNNING] * 3 + [Activity.WALKING] * 2:
        smoother.push(label)
    assert smoother.smoothed is Activity.WALKING


def test_long_run_beats_brief_walking(clock):
    smoother = ActivitySmoother(window_size=10, clock=clock)
    for _ in range(9):
        clock.advance(0.2)
        smoother.push(Activity.WALKING)
    for _ in range(5):
        clock.advance(0.2)
        smoother.push(Activity.RUNNING)
    assert smoother.smoothed is Activity.RUNNING

    clock.advance(60)
    assert smoother.finalize() is Activity.RUNNING
    tally = smoother.get_tally()
    assert tally[Activity.RUNNING] == 60000
    assert tally[Activity.WALKING] == 2600


def test_finalize_is_idempotent(clock):
    smoother = ActivitySmoother(clock=clock)
    clock.advance(5)
    smoother.push(Activity.WALKING)
    clock.advance(2)
    first = smoother.finalize()
    tally = smoother.get_tally()

    clock.advance(100)
    assert smoother.finalize() is first
    assert smoother.get_tally() == tally
    assert first is Activity.STANDING


def test_finalize_without_predictions(clock):
    smoother = ActivitySmoother(clock=clock, initial=Activity.WALKING)
    assert smoother.finalize() is Activity.WALKING


def test_smoother_rejects_empty_window():
    with pytest.raises(ValueError):
        ActivitySmoother(window_size=0)


# ---------------------------------------------------------------- recognizer

def test_recognizer_emits_once_per_block(clock):
    recognizer = ActivityRecognizer(clock=clock)
    results = [recognizer.feed(m) for m in CONSTANT]
    assert results[:15] == [None] * 15
    assert results[15] is Activity.WALKING
    assert recognizer.blocks_classified == 1


def test_recognizer_blocks_do_not_overlap(clock):
    recognizer = ActivityRecognizer(clock=clock)
    labels = [recognizer.feed(m) for m in STILL + SPIKE + SPIKE]
    assert [label for label in labels if label is not None] == [
        Activity.STANDING, Activity.RUNNING, Activity.RUNNING,
    ]


def test_recognizer_skips_malformed_block(clock):
    recognizer = ActivityRecognizer(clock=clock)
    for m in CONSTANT:
        recognizer.feed(m)
    block = STILL[:15] + ["bad"]
    assert [recognizer.feed(m) for m in block][-1] is None
    assert recognizer.blocks_skipped == 1
    assert recognizer.smoothed is Activity.WALKING
