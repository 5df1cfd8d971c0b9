from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype
from sklearn.impute import SimpleImputer
from sklearn.model_selection import train_test_split
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .config import Config
from .errors import ConfigurationError, SchemaMismatchError
from .logs import get_logger

logger = get_logger(__name__)


#  PARTITION
def partition(df, fraction=None, seed=None, target=None):
    """
    Stratified split of ``df`` on the label.

    Returns (train_idx, val_idx): disjoint index arrays of ``df`` whose union is
    every row. The same seed always yields the same split.
    """
    fraction = Config.SPLIT_FRACTION if fraction is None else fraction
    seed = Config.RANDOM_STATE if seed is None else seed
    target = target or Config.TARGET

    if not 0.0 < fraction < 1.0:
        raise ConfigurationError(f"Split fraction must be in (0, 1), got {fraction}.")
    if target not in df.columns:
        raise ConfigurationError(f"Label column '{target}' not found. Columns: {list(df.columns)}")

    counts = df[target].value_counts(dropna=False)
    if df[target].isna().any():
        raise ConfigurationError(f"Label column '{target}' has {int(df[target].isna().sum())} missing values.")
    if (counts < 2).any():
        small = counts[counts < 2].index.tolist()
        raise ConfigurationError(f"Classes {small} have fewer than 2 rows; cannot stratify on '{target}'.")

    try:
        train_idx, val_idx = train_test_split(
            df.index.to_numpy(), train_size=fraction, stratify=df[target], random_state=seed,
        )
    except ValueError as e:
        raise ConfigurationError(f"Cannot split {len(df)} rows at fraction {fraction}: {e}") from e
    return np.sort(train_idx), np.sort(val_idx)


def split_train_val(df, cfg=None):
    cfg = cfg or Config()
    train_idx, val_idx = partition(df, cfg.SPLIT_FRACTION, cfg.RANDOM_STATE, cfg.TARGET)
    train_df = df.loc[train_idx].copy()
    val_df = df.loc[val_idx].copy()
    logger.info(f"Partitioned {len(df)} rows -> train {len(train_df)}, validation {len(val_df)}")
    return train_df, val_df


#  PRUNING PASSES
# Each pass looks at the training subset only and returns the columns to drop.

def missing_columns(df, threshold, exclude=()):
    frac = df.isna().mean()
    return [c for c in df.columns if c not in exclude and frac[c] > threshold]


def identifier_columns(df, n_leading, exclude=()):
    return [c for c in df.columns[:n_leading] if c not in exclude]


def near_zero_var_columns(df, freq_cut, unique_cut, exclude=()):
    """
    caret-style near-zero-variance test.

    A column is flagged when it holds a single value, or when the most common
    value outnumbers the runner-up by more than ``freq_cut`` while distinct
    values make up at most ``unique_cut`` percent of the rows.
    """
    out = []
    n = len(df)
    for c in df.columns:
        if c in exclude:
            continue
        counts = df[c].value_counts(dropna=True)
        if len(counts) <= 1:
            out.append(c)
            continue
        freq_ratio = counts.iloc[0] / counts.iloc[1]
        pct_unique = 100.0 * len(counts) / n
        if freq_ratio > freq_cut and pct_unique <= unique_cut:
            out.append(c)
    return out


def correlated_columns(df, cutoff, exclude=()):
    """
    Drop one column of each pair with |r| >= cutoff.

    Scans the upper triangle in column order: the earlier column of a pair is
    kept and the later one dropped. Dropped columns take no further part.
    """
    cols = [c for c in df.columns if c not in exclude and is_numeric_dtype(df[c])]
    if len(cols) < 2:
        return []
    corr = df[cols].astype(float).corr(method="pearson").abs().to_numpy()

    dropped = set()
    for i in range(len(cols)):
        if i in dropped:
            continue
        for j in range(i + 1, len(cols)):
            if j in dropped:
                continue
            r = corr[i, j]
            if not np.isnan(r) and r >= cutoff:
                dropped.add(j)
    return [cols[j] for j in sorted(dropped)]


#  COLUMN MASK
@dataclass(frozen=True)
class ColumnMask:
    """Kept feature columns (in order) plus what each pass removed."""
    keep: tuple
    target: str
    dropped: dict = field(default_factory=dict)

    def apply(self, df):
        """Return a new frame restricted to the kept features (and label if present)."""
        missing = [c for c in self.keep if c not in df.columns]
        if missing:
            raise SchemaMismatchError(
                f"Table lacks {len(missing)} expected column(s): {missing}", columns=missing
            )
        cols = list(self.keep)
        if self.target in df.columns:
            cols.append(self.target)
        return df[cols].copy()

    @property
    def n_dropped(self):
        return sum(len(v) for v in self.dropped.values())


class FeatureFilter:
    """Order-dependent pruning passes, fitted on the training subset."""

    PASSES = ("missing", "identifier", "near_zero_var", "correlated")

    def __init__(self, cfg=None):
        self.cfg = cfg or Config()

    def _drop_for(self, name, df, ids=()):
        cfg, ex = self.cfg, (self.cfg.TARGET,)
        if name == "missing":
            return missing_columns(df, cfg.NA_THRESHOLD, exclude=ex)
        if name == "identifier":
            return [c for c in ids if c in df.columns]
        if name == "near_zero_var":
            return near_zero_var_columns(df, cfg.NZV_FREQ_CUT, cfg.NZV_UNIQUE_CUT, exclude=ex)
        return correlated_columns(df, cfg.CORR_CUTOFF, exclude=ex)

    def fit(self, train_df):
        if self.cfg.TARGET not in train_df.columns:
            raise SchemaMismatchError(
                f"Training subset missing label column: {self.cfg.TARGET}", columns=[self.cfg.TARGET]
            )
        # leading identifier names, taken before any pass runs
        ids = identifier_columns(train_df, self.cfg.ID_LEADING_COLUMNS, exclude=(self.cfg.TARGET,))
        cur = train_df
        dropped = {}
        for name in self.PASSES:
            drop = self._drop_for(name, cur, ids)
            dropped[name] = tuple(drop)
            cur = cur.drop(columns=drop)
            logger.info(f"[{name}] dropped {len(drop)} column(s); {cur.shape[1] - 1} feature(s) remain")
        keep = tuple(c for c in cur.columns if c != self.cfg.TARGET)
        return ColumnMask(keep=keep, target=self.cfg.TARGET, dropped=dropped)

    def fit_apply(self, train_df, *others):
        """Fit on ``train_df`` and mask it together with every other table."""
        mask = self.fit(train_df)
        return (mask, mask.apply(train_df)) + tuple(mask.apply(o) for o in others)


#  MODEL INPUTS
def build_xy(df, target=None):
    target = target or Config.TARGET
    if target not in df.columns:
        raise SchemaMismatchError(f"Table missing label column: {target}", columns=[target])
    X = df.drop(columns=[target]).copy()
    y = df[target].astype(str).copy()
    return X, y


def as_float_bools(X):
    """Booleans enter the models as 0/1 floats."""
    flags = [c for c in X.columns if is_bool_dtype(X[c])]
    return X.astype({c: float for c in flags}) if flags else X


def numeric_pipeline():
    # Fill NaNs (median), then scale
    return Pipeline([
        ("imputer", SimpleImputer(strategy="median")),
        ("scaler", StandardScaler()),
    ])
