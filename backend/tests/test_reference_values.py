"""
Recursive indicators against frozen reference values.

The fixture is a fixed, non-monotone 40-candle series. Expected tails were
worked out once, independently of this package, from the textbook
recurrences: Wilder sums for ATR/DI/ADX, SMA-seeded EMA chains, the
standard PSAR step/extreme update and Kaufman's efficiency ratio.
"""

import numpy as np
import pytest

from conftest import make_series, run

# (open, high, low, close, volume)
REFERENCE_CANDLES = [
    (99.4, 99.8, 98.9, 99.2, 1000),
    (98.9, 104.04, 98.35, 103.29, 1137),
    (103.29, 107.55, 102.49, 106.45, 1274),
    (106.75, 107.15, 104.58, 105.63, 1411),
    (106.23, 106.98, 105.15, 105.45, 1548),
    (104.85, 105.95, 103.29, 103.84, 1685),
    (103.54, 103.94, 98.35, 99.15, 1122),
    (99.15, 99.9, 96.1, 97.15, 1259),
    (97.45, 98.55, 95.99, 96.29, 1396),
    (96.89, 97.29, 94.17, 94.72, 1533),
    (94.12, 98.02, 93.32, 97.27, 1670),
    (96.97, 102.16, 95.92, 101.06, 1107),
    (101.06, 103.27, 100.76, 102.87, 1244),
    (103.17, 107.27, 102.62, 106.52, 1381),
    (107.12, 109.93, 106.32, 108.83, 1518),
    (108.23, 108.63, 105.94, 106.99, 1655),
    (106.69, 107.44, 105.61, 105.91, 1092),
    (105.91, 107.01, 103.25, 103.8, 1229),
    (104.1, 104.5, 98.35, 99.15, 1366),
    (99.75, 100.5, 96.67, 97.72, 1503),
    (97.12, 98.9, 96.82, 97.8, 1640),
    (97.5, 97.9, 96.7, 97.25, 1077),
    (97.25, 101.35, 96.45, 100.6, 1214),
    (100.9, 105.85, 99.85, 104.75, 1351),
    (105.35, 106.75, 105.05, 106.35, 1488),
    (105.75, 110.06, 105.2, 109.31, 1625),
    (109.01, 111.72, 108.21, 110.62, 1062),
    (110.62, 111.02, 106.74, 107.79, 1199),
    (108.09, 108.84, 105.72, 106.02, 1336),
    (106.62, 107.72, 103.16, 103.71, 1473),
    (103.11, 103.51, 98.63, 99.43, 1610),
    (99.13, 99.88, 97.76, 98.81, 1047),
    (98.81, 101.01, 98.51, 99.91, 1184),
    (100.21, 100.69, 99.66, 100.29, 1321),
    (100.89, 104.96, 100.09, 104.21, 1458),
    (103.61, 109.49, 102.56, 108.39, 1595),
    (108.09, 109.88, 107.79, 109.48, 1032),
    (109.48, 112.29, 108.93, 111.54, 1169),
    (111.84, 112.94, 111.02, 111.82, 1306),
    (112.42, 112.82, 107.09, 108.14, 1443),
]

RTOL = 1e-6


@pytest.fixture(scope="module")
def reference_series():
    opens, highs, lows, closes, volumes = zip(*REFERENCE_CANDLES)
    return make_series(closes, opens=opens, highs=highs, lows=lows, volumes=volumes)


# key, overrides, offset, last three values
SINGLE_OUTPUT_CASES = [
    ("atr", {"period": 5}, 5, [3.61700481062, 3.2776038485, 3.7680830788]),
    ("natr", {"period": 5}, 5, [3.24278717108, 2.93114277276, 3.48444893545]),
    ("dx", {"period": 5}, 5, [62.7415565157, 65.2981356657, 8.84977984412]),
    ("plus_di", {"period": 5}, 5, [49.6210915538, 47.7738581978, 33.2442312364]),
    ("minus_di", {"period": 5}, 5, [11.3603720824, 10.0294049853, 27.8385404219]),
    ("adxr", {"period": 5}, 13, [38.9578483531, 40.0970268193, 38.0158156804]),
    ("psar", {}, 1, [98.470016, 99.29921504, 100.390477837]),
    ("kama", {"period": 5}, 5, [108.647165107, 110.057313948, 109.91324135]),
    ("dema", {"period": 5}, 8, [110.390936585, 111.759050787, 110.329429234]),
    ("tema", {"period": 5}, 12, [111.726874002, 112.669992136, 110.206913722]),
    ("t3", {"period": 3}, 12, [109.130723466, 110.958846349, 110.80112863]),
    ("trix", {"period": 4}, 10, [1.03580747029, 1.19769042642, 0.951752162706]),
    (
        "ultosc",
        {"period1": 3, "period2": 6, "period3": 12},
        12,
        [76.5195419914, 68.8294946066, 48.4924159],
    ),
    ("cci", {"period": 10}, 9, [126.177929802, 118.737672584, 62.8370971278]),
    (
        "adosc",
        {"fastPeriod": 3, "slowPeriod": 10},
        9,
        [1042.07748149, 1001.57999149, 603.09361784],
    ),
]


@pytest.mark.parametrize(
    "key, overrides, offset, expected",
    SINGLE_OUTPUT_CASES,
    ids=[case[0] for case in SINGLE_OUTPUT_CASES],
)
def test_single_output_tail(reference_series, key, overrides, offset, expected):
    value = run(key, reference_series, **overrides)
    assert value.offset == offset
    np.testing.assert_allclose(value.values[-3:], expected, rtol=RTOL)


def test_adx_outputs(reference_series):
    value = run("adx", reference_series, period=5)
    assert value.offset == 9
    np.testing.assert_allclose(
        value.outputs["adx"][-3:], [43.8145056825, 48.1112316791, 40.2589413121], rtol=RTOL
    )
    # +DI/-DI are trimmed to the ADX but keep their own values
    np.testing.assert_allclose(
        value.outputs["pdi"][-3:], [49.6210915538, 47.7738581978, 33.2442312364], rtol=RTOL
    )
    np.testing.assert_allclose(
        value.outputs["mdi"][-3:], [11.3603720824, 10.0294049853, 27.8385404219], rtol=RTOL
    )


def test_ppo_outputs(reference_series):
    value = run("ppo", reference_series, fastPeriod=5, slowPeriod=10, signalPeriod=4)
    assert value.offset == 12
    out = value.outputs
    np.testing.assert_allclose(
        out["ppo"][-3:], [1.78489419707, 2.01401181513, 1.50260630684], rtol=RTOL
    )
    np.testing.assert_allclose(
        out["signal"][-3:], [0.940843742944, 1.37011097182, 1.42310910583], rtol=RTOL
    )
    np.testing.assert_allclose(
        out["histogram"][-3:], [0.844050454123, 0.64390084331, 0.0794972010128], rtol=RTOL
    )
