import os, json, optuna, numpy as np
from argparse import ArgumentParser
from dataclasses import replace
from sklearn.model_selection import cross_val_score
from sklearn.preprocessing import LabelEncoder

from .config import Config
from .data import load_tables
from .errors import ConfigurationError
from .features import FeatureFilter, build_xy, split_train_val
from .logs import get_logger, setup_logging
from .model import load_best_params, cv_folds, get_family

logger = get_logger(__name__)


def _suggest_random_forest(trial: optuna.Trial) -> dict:
    return {
        "n_estimators": trial.suggest_int("n_estimators", 100, 500, step=50),
        "max_features": trial.suggest_categorical("max_features", ["sqrt", "log2", 0.25, 0.5]),
        "min_samples_leaf": trial.suggest_int("min_samples_leaf", 1, 5),
    }


def _suggest_gradient_boosting(trial: optuna.Trial) -> dict:
    return {
        "max_depth": trial.suggest_int("max_depth", 1, 6),
        "n_estimators": trial.suggest_int("n_estimators", 50, 400, step=50),
        "learning_rate": trial.suggest_float("learning_rate", 1e-2, 0.3, log=True),
    }


def _suggest_naive_bayes(trial: optuna.Trial) -> dict:
    return {"var_smoothing": trial.suggest_float("var_smoothing", 1e-12, 1e-2, log=True)}


SEARCH_SPACES = {
    "random_forest": _suggest_random_forest,
    "gradient_boosting": _suggest_gradient_boosting,
    "naive_bayes": _suggest_naive_bayes,
}


def _cv_accuracy(pipe, X, y, folds, n_jobs):
    return float(np.mean(cross_val_score(pipe, X, y, cv=folds, scoring="accuracy", n_jobs=n_jobs)))


def tune_family(family_name, training, cfg, n_trials, timeout=None):
    """Search one family's hyperparameters by mean k-fold accuracy; returns (best_params, best_value)."""
    if family_name not in SEARCH_SPACES:
        raise ConfigurationError(
            f"Family {family_name} has no search space. Tunable: {list(SEARCH_SPACES)}"
        )
    family = get_family(family_name, cfg)
    X, y = build_xy(training, cfg.TARGET)
    y_enc = LabelEncoder().fit_transform(y)
    folds = cv_folds(y_enc, cfg.CV_FOLDS, cfg.RANDOM_STATE)
    suggest = SEARCH_SPACES[family_name]

    def objective(trial: optuna.Trial):
        pipe = family.build_pipeline()
        pipe.set_params(**{f"clf__{k}": v for k, v in suggest(trial).items()})
        return _cv_accuracy(pipe, X, y_enc, folds, cfg.CV_JOBS)

    sampler = optuna.samplers.TPESampler(seed=cfg.RANDOM_STATE)
    study = optuna.create_study(direction="maximize", sampler=sampler)
    study.optimize(objective, n_trials=n_trials, timeout=timeout)
    logger.info(f"[{family_name}] {len(study.trials)} trial(s), best cv accuracy={study.best_value:.4f}")
    return dict(study.best_params), float(study.best_value)


def main():
    ap = ArgumentParser()
    ap.add_argument("--family", type=str, required=True, choices=sorted(SEARCH_SPACES))
    ap.add_argument("--trials", type=int, default=Config.TUNE_TRIALS)
    ap.add_argument("--timeout", type=int, default=Config.TUNE_TIMEOUT)
    ap.add_argument("--folds", type=int, default=Config.CV_FOLDS)
    ap.add_argument("--save", type=str, default=Config.BEST_PARAMS_PATH)
    args = ap.parse_args()

    setup_logging()
    # tuned values must not leak into the family we are tuning
    cfg = replace(Config(), CV_FOLDS=args.folds, BEST_PARAMS_PATH="")

    train_df, _ = load_tables(cfg)
    training_raw, _ = split_train_val(train_df, cfg)
    _, training = FeatureFilter(cfg).fit_apply(training_raw)

    best, value = tune_family(args.family, training, cfg, args.trials, args.timeout)
    print("Best value (accuracy):", value)
    print("Best params:", best)

    saved = load_best_params(args.save)
    saved[args.family] = best
    os.makedirs(os.path.dirname(args.save) or ".", exist_ok=True)
    with open(args.save, "w", encoding="utf-8") as f:
        json.dump(saved, f, indent=2)
    print(f"Saved best params -> {args.save}")


if __name__ == "__main__":
    main()
