from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from .config import Config
from .errors import SchemaMismatchError


@dataclass(frozen=True)
class Evaluation:
    family: str
    confusion: pd.DataFrame     # rows = actual, columns = predicted
    accuracy: float
    n_rows: int


@dataclass(frozen=True)
class Comparison:
    family_a: str
    family_b: str
    table: pd.DataFrame         # index = A correct, columns = B correct
    both_correct: int
    a_only: int
    b_only: int
    both_wrong: int

    @property
    def total(self):
        return self.both_correct + self.a_only + self.b_only + self.both_wrong


def _actual(df, target):
    if target not in df.columns:
        raise SchemaMismatchError(f"Table missing label column: {target}", columns=[target])
    return df[target].astype(str).to_numpy()


def score(y_true, y_pred, family=""):
    """Confusion matrix and accuracy for two aligned label arrays."""
    y_true = np.asarray(y_true, dtype=str)
    y_pred = np.asarray(y_pred, dtype=str)
    labels = sorted(set(y_true) | set(y_pred))
    if not labels:
        cm = np.zeros((0, 0), dtype=int)
    else:
        cm = confusion_matrix(y_true, y_pred, labels=labels)
    confusion = pd.DataFrame(
        cm,
        index=pd.Index(labels, name="actual"),
        columns=pd.Index(labels, name="predicted"),
    )
    n = len(y_true)
    acc = float(np.trace(cm) / n) if n else float("nan")
    return Evaluation(family=family, confusion=confusion, accuracy=acc, n_rows=n)


def evaluate(predictor, df, target=None):
    target = target or Config.TARGET
    y_true = _actual(df, target)
    return score(y_true, predictor.predict(df), family=predictor.family)


def compare(predictor_a, predictor_b, df, target=None):
    """
    Cross-tabulate which of two predictors get each row right.

    The off-diagonal counts show how much an ensemble of the two could gain.
    """
    target = target or Config.TARGET
    y_true = _actual(df, target)
    a_ok = predictor_a.predict(df).astype(str) == y_true
    b_ok = predictor_b.predict(df).astype(str) == y_true

    table = (
        pd.crosstab(
            pd.Series(a_ok, name=f"{predictor_a.family}_correct"),
            pd.Series(b_ok, name=f"{predictor_b.family}_correct"),
        )
        .reindex(index=[True, False], columns=[True, False], fill_value=0)
    )
    return Comparison(
        family_a=predictor_a.family,
        family_b=predictor_b.family,
        table=table,
        both_correct=int((a_ok & b_ok).sum()),
        a_only=int((a_ok & ~b_ok).sum()),
        b_only=int((~a_ok & b_ok).sum()),
        both_wrong=int((~a_ok & ~b_ok).sum()),
    )


def rank(evaluations, order=None):
    """Family names sorted by accuracy, ties kept in ``order``."""
    order = list(order or evaluations)
    return sorted(evaluations, key=lambda k: (-evaluations[k].accuracy, order.index(k)))
