"""
Unit tests for the feature pruning passes and the column mask.
"""

import numpy as np
import pandas as pd
import pytest

from pml.errors import SchemaMismatchError
from pml.features import (
    ColumnMask,
    FeatureFilter,
    build_xy,
    correlated_columns,
    identifier_columns,
    missing_columns,
    near_zero_var_columns,
    partition,
)


class TestMissingPass:
    """Boundary behaviour of the missingness threshold."""

    def _frame(self, n_missing_a, n_missing_b, n=1000):
        a = np.arange(n, dtype=float)
        b = np.arange(n, dtype=float)
        a[:n_missing_a] = np.nan
        b[:n_missing_b] = np.nan
        return pd.DataFrame({"a": a, "b": b, "classe": "A"})

    def test_exactly_threshold_is_kept(self):
        df = self._frame(300, 0)
        assert missing_columns(df, 0.30) == []

    def test_just_above_threshold_is_dropped(self):
        df = self._frame(300, 301)
        assert missing_columns(df, 0.30) == ["b"]

    def test_threshold_is_configurable(self):
        df = self._frame(300, 100)
        assert missing_columns(df, 0.05) == ["a", "b"]

    def test_label_never_dropped(self):
        df = pd.DataFrame({"x": [1.0, 2.0], "classe": [np.nan, np.nan]})
        assert missing_columns(df, 0.30, exclude=("classe",)) == []


class TestIdentifierPass:

    def test_leading_columns_by_position(self, labelled):
        dropped = identifier_columns(labelled, 7)
        assert dropped == list(labelled.columns[:7])

    def test_label_excluded(self):
        df = pd.DataFrame({"classe": ["A"], "id": [1], "x": [0.5]})
        assert identifier_columns(df, 2, exclude=("classe",)) == ["id"]


class TestNearZeroVarPass:

    def test_constant_column(self):
        df = pd.DataFrame({"const": [3] * 50, "x": np.arange(50)})
        assert near_zero_var_columns(df, 19, 10) == ["const"]

    def test_dominant_value_with_few_distinct(self):
        # 98 zeros, 2 ones: ratio 49 > 19, 2% distinct
        df = pd.DataFrame({"flag": [0] * 98 + [1] * 2, "x": np.arange(100)})
        assert near_zero_var_columns(df, 19, 10) == ["flag"]

    def test_balanced_binary_kept(self):
        df = pd.DataFrame({"flag": [0, 1] * 50})
        assert near_zero_var_columns(df, 19, 10) == []

    def test_skewed_but_many_distinct_kept(self):
        # ratio is huge but 30% of values are distinct
        values = [0] * 70 + list(range(1, 31))
        df = pd.DataFrame({"skewed": values})
        assert near_zero_var_columns(df, 19, 10) == []

    def test_all_missing_is_flagged(self):
        df = pd.DataFrame({"empty": [np.nan] * 10})
        assert near_zero_var_columns(df, 19, 10) == ["empty"]


class TestCorrelationPass:

    def _frame(self, n=500, seed=3):
        rng = np.random.default_rng(seed)
        a = rng.normal(size=n)
        b = 0.9 * a + np.sqrt(1 - 0.81) * rng.normal(size=n)
        c = rng.normal(size=n)
        return pd.DataFrame({"A": a, "B": b, "C": c})

    def test_one_of_pair_dropped(self):
        """A,B correlate at ~0.9: the later column goes, independent C stays."""
        df = self._frame()
        assert correlated_columns(df, 0.75) == ["B"]

    def test_order_decides_which_is_kept(self):
        df = self._frame()[["B", "A", "C"]]
        assert correlated_columns(df, 0.75) == ["A"]

    def test_dropped_column_not_reevaluated(self):
        """A~B and B~C but A,C below cutoff: only B is dropped."""
        n = 400
        rng = np.random.default_rng(5)
        a = rng.normal(size=n)
        c = rng.normal(size=n)
        b = (a + c) / np.sqrt(2) * 0.98 + rng.normal(0, 0.05, n)
        df = pd.DataFrame({"A": a, "B": b, "C": c})
        # |r(A,B)| and |r(B,C)| are about 0.7; use a cutoff they clear
        assert correlated_columns(df, 0.6) == ["B"]

    def test_negative_correlation_counts(self):
        df = self._frame()
        df["B"] = -df["B"]
        assert correlated_columns(df, 0.75) == ["B"]

    def test_non_numeric_ignored(self):
        df = self._frame()
        df["name"] = "x"
        df["user"] = pd.array(["a", "b"] * (len(df) // 2), dtype="string")
        assert correlated_columns(df, 0.75) == ["B"]

    def test_bool_column_is_numeric(self):
        df = self._frame()
        df["moving"] = np.random.default_rng(9).random(len(df)) < 0.5
        df["moving_code"] = df["moving"].astype(int)
        assert correlated_columns(df, 0.75) == ["B", "moving_code"]

    def test_label_excluded(self):
        df = self._frame()
        df["classe"] = df["A"]
        assert correlated_columns(df, 0.75, exclude=("classe",)) == ["B"]


class TestFeatureFilter:

    def _split(self, labelled, unlabelled, cfg):
        train_idx, val_idx = partition(labelled, cfg.SPLIT_FRACTION, cfg.RANDOM_STATE)
        return labelled.loc[train_idx], labelled.loc[val_idx], unlabelled

    def test_expected_columns_survive(self, labelled, unlabelled, cfg):
        training, validation, testing = self._split(labelled, unlabelled, cfg)
        mask = FeatureFilter(cfg).fit(training)

        assert mask.keep == ("roll_belt", "pitch_belt", "gyros_noise")
        assert mask.dropped["missing"] == ("max_roll_belt",)
        assert "kurtosis_flag" in mask.dropped["near_zero_var"]
        assert mask.dropped["correlated"] == ("total_accel_belt",)

    def test_identical_feature_sets(self, labelled, unlabelled, cfg):
        training, validation, testing = self._split(labelled, unlabelled, cfg)
        mask, tr, va, te = FeatureFilter(cfg).fit_apply(training, validation, testing)

        features = lambda df: [c for c in df.columns if c != cfg.TARGET]
        assert features(tr) == features(va) == features(te) == list(mask.keep)
        assert cfg.TARGET in tr.columns and cfg.TARGET in va.columns
        assert cfg.TARGET not in te.columns

    def test_inputs_not_mutated(self, labelled, unlabelled, cfg):
        training, validation, testing = self._split(labelled, unlabelled, cfg)
        before = list(training.columns)
        _, tr, _, _ = FeatureFilter(cfg).fit_apply(training, validation, testing)

        tr.iloc[0, 0] = 12345.0
        assert list(training.columns) == before
        assert training.iloc[0][tr.columns[0]] != 12345.0

    def test_passes_run_in_order(self, labelled, cfg):
        """A column both sparse and constant is claimed by the earlier pass only."""
        df = labelled.copy()
        df["amplitude_yaw_belt"] = np.where(np.arange(len(df)) % 10 == 0, 0.0, np.nan)
        assert near_zero_var_columns(df[["amplitude_yaw_belt"]], cfg.NZV_FREQ_CUT, cfg.NZV_UNIQUE_CUT)

        mask = FeatureFilter(cfg).fit(df)

        assert "amplitude_yaw_belt" in mask.dropped["missing"]
        for name in ("identifier", "near_zero_var", "correlated"):
            assert not set(mask.dropped["missing"]) & set(mask.dropped[name])

    def test_sparse_identifier_keeps_window_fixed(self, labelled, cfg):
        df = labelled.copy()
        df.loc[df.index[::2], "cvtd_timestamp"] = np.nan

        mask = FeatureFilter(cfg).fit(df)

        assert mask.dropped["missing"] == ("cvtd_timestamp", "max_roll_belt")
        assert "roll_belt" not in mask.dropped["identifier"]
        assert set(mask.dropped["identifier"]) == set(labelled.columns[:7]) - {"cvtd_timestamp"}
        assert mask.keep == ("roll_belt", "pitch_belt", "gyros_noise")

    def test_missing_label_fails(self, labelled, cfg):
        with pytest.raises(SchemaMismatchError):
            FeatureFilter(cfg).fit(labelled.drop(columns=["classe"]))

    def test_table_lacking_kept_column(self, labelled, unlabelled, cfg):
        mask = FeatureFilter(cfg).fit(labelled)
        broken = unlabelled.drop(columns=["pitch_belt"])

        with pytest.raises(SchemaMismatchError) as exc:
            mask.apply(broken)
        assert exc.value.columns == ["pitch_belt"]


class TestColumnMask:

    def test_apply_keeps_order_and_label(self):
        mask = ColumnMask(keep=("b", "a"), target="y", dropped={"missing": ("c",)})
        df = pd.DataFrame({"a": [1], "b": [2], "c": [3], "y": ["A"]})

        out = mask.apply(df)
        assert list(out.columns) == ["b", "a", "y"]
        assert mask.n_dropped == 1

    def test_build_xy(self, labelled):
        X, y = build_xy(labelled)
        assert "classe" not in X.columns
        assert len(X) == len(y)

    def test_build_xy_without_label(self, unlabelled):
        with pytest.raises(SchemaMismatchError):
            build_xy(unlabelled)
