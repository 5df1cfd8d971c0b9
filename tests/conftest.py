"""Shared fixtures: small synthetic tables shaped like the sensor dataset."""

import sys
from dataclasses import replace
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pml.config import Config

CLASSES = ["A", "B", "C", "D", "E"]
ID_COLUMNS = [
    "Unnamed: 0", "user_name", "raw_timestamp_part_1", "raw_timestamp_part_2",
    "cvtd_timestamp", "new_window", "num_window",
]


def make_sensor_frame(n=300, seed=0, labelled=True):
    """
    Synthetic table with the same column kinds the real data has:
    identifiers, a sparse summary column, a near-constant flag, two signal
    columns, a near-duplicate of one of them, and pure noise.
    """
    rng = np.random.default_rng(seed)
    code = np.arange(n) % len(CLASSES)
    rng.shuffle(code)

    roll = code * 2.0 + rng.normal(0, 0.5, n)
    pitch = (code - 2.0) ** 2 + rng.normal(0, 0.5, n)
    sparse = np.where(rng.random(n) < 0.9, np.nan, rng.normal(size=n))
    flag = np.where(np.arange(n) < 2, 1, 0)

    df = pd.DataFrame({
        "Unnamed: 0": np.arange(1, n + 1),
        "user_name": rng.choice(["adelmo", "carlitos", "pedro"], n),
        "raw_timestamp_part_1": 1322489729 + np.arange(n),
        "raw_timestamp_part_2": rng.integers(0, 999999, n),
        "cvtd_timestamp": "05/12/2011 11:23",
        "new_window": np.where(np.arange(n) % 50 == 0, "yes", "no"),
        "num_window": np.arange(n) // 20,
        "roll_belt": roll,
        "pitch_belt": pitch,
        "max_roll_belt": sparse,
        "kurtosis_flag": flag,
        "total_accel_belt": roll * 0.99 + rng.normal(0, 0.05, n),
        "gyros_noise": rng.normal(size=n),
    })
    if labelled:
        df["classe"] = np.asarray(CLASSES)[code]
    else:
        df["problem_id"] = np.arange(1, n + 1)
    return df


@pytest.fixture
def cfg():
    return replace(
        Config(),
        CV_FOLDS=3,
        CV_JOBS=1,
        FIT_JOBS=1,
        BEST_PARAMS_PATH="",
        FAMILIES=("linear_discriminant", "naive_bayes"),
    )


@pytest.fixture
def labelled():
    return make_sensor_frame(300, seed=0, labelled=True)


@pytest.fixture
def unlabelled():
    return make_sensor_frame(20, seed=1, labelled=False)
