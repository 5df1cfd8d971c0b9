import os, json
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
from joblib import Parallel, delayed, dump, load
from pandas.api.types import is_numeric_dtype

from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.naive_bayes import GaussianNB
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import LabelEncoder
from xgboost import XGBClassifier

from .config import Config
from .errors import ConfigurationError, FitError, SchemaMismatchError
from .features import as_float_bools, build_xy, numeric_pipeline
from .logs import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrainedPredictor:
    family: str
    estimator: object
    classes: tuple
    features: tuple
    best_params: tuple = ()  # (name, value) pairs
    cv_scores: tuple = ()

    @property
    def params(self):
        return dict(self.best_params)

    @property
    def cv_accuracy(self):
        return float(np.mean(self.cv_scores)) if self.cv_scores else float("nan")

    def predict(self, X):
        missing = [c for c in self.features if c not in X.columns]
        if missing:
            raise SchemaMismatchError(
                f"[{self.family}] table lacks feature column(s): {missing}", columns=missing
            )
        codes = self.estimator.predict(as_float_bools(X[list(self.features)]))
        return np.asarray(self.classes, dtype=object)[np.asarray(codes, dtype=int)]


def cv_folds(y, n_splits=None, seed=None):
    """
    Stratified k-fold assignment as a list of (train_pos, test_pos) arrays.

    Each position is tested exactly once and trained on n_splits - 1 times.
    """
    n_splits = n_splits or Config.CV_FOLDS
    seed = Config.RANDOM_STATE if seed is None else seed
    skf = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=seed)
    return list(skf.split(np.zeros(len(y)), y))


def load_best_params(path):
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Tuned parameters file {path} is not valid JSON: {e}") from e


#  MODEL FAMILIES
class ModelFamily(ABC):
    """
    A pluggable statistical method.

    ``fit`` cross-validates a small hyperparameter grid on a labelled table and
    refits the winner on all of it; ``predict`` maps a table to labels.
    """

    name = ""
    param_grid = {}

    def __init__(self, cfg=None):
        self.cfg = cfg or Config()

    @abstractmethod
    def build_estimator(self):
        """Return an unfitted classifier."""

    def build_pipeline(self):
        return Pipeline([("pre", numeric_pipeline()), ("clf", self.build_estimator())])

    def grid(self):
        tuned = load_best_params(self.cfg.BEST_PARAMS_PATH).get(self.name)
        if tuned:
            return {f"clf__{k}": [v] for k, v in tuned.items()}
        return dict(self.param_grid)

    def _check(self, X):
        non_numeric = [c for c in X.columns if not is_numeric_dtype(X[c])]
        if non_numeric:
            raise FitError(self.name, f"non-numeric feature column(s): {non_numeric}")
        constant = [c for c in X.columns if X[c].nunique(dropna=True) <= 1]
        if constant:
            raise FitError(self.name, f"zero-variance column(s): {constant}")

    def fit(self, df):
        if self.cfg.TARGET not in df.columns:
            raise FitError(self.name, f"label column '{self.cfg.TARGET}' is missing")
        X, y = build_xy(df, self.cfg.TARGET)
        self._check(X)
        X = as_float_bools(X)

        enc = LabelEncoder().fit(y)
        y_enc = enc.transform(y)
        grid = self.grid() or [{}]
        try:
            folds = cv_folds(y_enc, self.cfg.CV_FOLDS, self.cfg.RANDOM_STATE)
            search = GridSearchCV(
                self.build_pipeline(), grid,
                scoring="accuracy", cv=folds, refit=True, n_jobs=self.cfg.CV_JOBS,
                error_score="raise",
            )
            search.fit(X, y_enc)
        except Exception as e:
            raise FitError(self.name, f"{type(e).__name__}: {e}") from e

        best = search.best_index_
        scores = tuple(
            float(search.cv_results_[f"split{k}_test_score"][best]) for k in range(len(folds))
        )
        params = tuple(sorted((k.removeprefix("clf__"), v) for k, v in search.best_params_.items()))
        return TrainedPredictor(
            family=self.name,
            estimator=search.best_estimator_,
            classes=tuple(enc.classes_),
            features=tuple(X.columns),
            best_params=params,
            cv_scores=scores,
        )

    def predict(self, predictor, df):
        return predictor.predict(df)


class LinearDiscriminant(ModelFamily):
    name = "linear_discriminant"

    def build_estimator(self):
        return LinearDiscriminantAnalysis()


class RandomForest(ModelFamily):
    name = "random_forest"
    param_grid = {"clf__max_features": ["sqrt", 0.25, 0.5]}

    def build_estimator(self):
        return RandomForestClassifier(
            n_estimators=200, min_samples_leaf=1,
            random_state=self.cfg.RANDOM_STATE, n_jobs=1,
        )


class GradientBoosting(ModelFamily):
    name = "gradient_boosting"
    param_grid = {
        "clf__max_depth": [1, 2, 3],
        "clf__n_estimators": [50, 100, 150],
    }

    def build_estimator(self):
        return XGBClassifier(
            learning_rate=0.1, subsample=1.0, reg_lambda=1.0,
            random_state=self.cfg.RANDOM_STATE, n_jobs=1, tree_method="hist",
        )


class NaiveBayes(ModelFamily):
    name = "naive_bayes"
    param_grid = {"clf__var_smoothing": [1e-9, 1e-6, 1e-3]}

    def build_estimator(self):
        return GaussianNB()


FAMILIES = {f.name: f for f in (LinearDiscriminant, RandomForest, GradientBoosting, NaiveBayes)}


def get_family(name, cfg=None):
    if name not in FAMILIES:
        raise ConfigurationError(f"Unknown model family: {name}. Available: {list(FAMILIES)}")
    return FAMILIES[name](cfg)


#  TRAINING
def _fit_one(name, df, cfg):
    try:
        return name, get_family(name, cfg).fit(df), None
    except FitError as e:
        return name, None, e


def train_all(train_df, cfg=None):
    """
    Fit every configured family on ``train_df``.

    Returns (predictors, failures) keyed by family name in configured order.
    One family failing leaves the others untouched.
    """
    cfg = cfg or Config()
    for name in cfg.FAMILIES:
        get_family(name, cfg)  # fail fast on typos

    results = Parallel(n_jobs=cfg.FIT_JOBS)(
        delayed(_fit_one)(name, train_df, cfg) for name in cfg.FAMILIES
    )

    predictors, failures = {}, {}
    for name, predictor, err in results:
        if err is not None:
            logger.error(f"Fit failed: {err}")
            failures[name] = err
        else:
            logger.info(f"[{name}] cv accuracy={predictor.cv_accuracy:.4f} params={predictor.params}")
            predictors[name] = predictor
    return predictors, failures


def save_model(bundle, path=None):
    path = path or Config.MODEL_PATH
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    dump(bundle, path)


def load_model(path=None):
    return load(path or Config.MODEL_PATH)
