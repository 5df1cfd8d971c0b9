"""
End-to-end report pipeline.

Steps:
1. Load training and testing tables
2. Stratified partition of the training table
3. Feature pruning fitted on the training subset, applied to all three tables
4. Cross-validated fit of every model family
5. Confusion matrix + accuracy on training and validation subsets
6. Agreement of the two best families on the validation subset
7. Predictions for the testing table from the best family
"""

from .config import Config
from .data import load_tables
from .evaluate import compare, evaluate, rank
from .features import FeatureFilter, partition
from .logs import get_logger
from .model import train_all

logger = get_logger(__name__)


def run_pipeline(cfg=None, train_df=None, test_df=None):
    """
    Run every stage and collect the intermediate values.

    Loading and filtering errors propagate; per-family fit errors end up in
    ``results['failures']``.

    Args:
        cfg: Config instance (defaults to ``Config()``)
        train_df: Labelled table; loaded from ``cfg.TRAIN_URL`` when omitted
        test_df: Unlabelled table; loaded from ``cfg.TEST_URL`` when omitted

    Returns:
        dict with partition indices, mask, filtered tables, predictors,
        failures, evaluations, comparison, best family and test predictions
    """
    cfg = cfg or Config()
    results = {}

    if train_df is None or test_df is None:
        train_df, test_df = load_tables(cfg)

    train_idx, val_idx = partition(train_df, cfg.SPLIT_FRACTION, cfg.RANDOM_STATE, cfg.TARGET)
    results["train_idx"], results["val_idx"] = train_idx, val_idx
    logger.info(f"Partitioned {len(train_df)} rows -> train {len(train_idx)}, validation {len(val_idx)}")

    mask, training, validation, testing = FeatureFilter(cfg).fit_apply(
        train_df.loc[train_idx], train_df.loc[val_idx], test_df,
    )
    results.update(mask=mask, training=training, validation=validation, testing=testing)
    logger.info(f"Kept {len(mask.keep)} feature(s), dropped {mask.n_dropped}")

    predictors, failures = train_all(training, cfg)
    results["predictors"], results["failures"] = predictors, failures

    results["train_eval"] = {k: evaluate(p, training, cfg.TARGET) for k, p in predictors.items()}
    results["val_eval"] = {k: evaluate(p, validation, cfg.TARGET) for k, p in predictors.items()}

    ranked = rank(results["val_eval"], order=cfg.FAMILIES)
    results["ranking"] = ranked
    results["comparison"] = None
    if len(ranked) >= 2:
        a, b = predictors[ranked[0]], predictors[ranked[1]]
        results["comparison"] = compare(a, b, validation, cfg.TARGET)

    results["best"] = ranked[0] if ranked else None
    results["test_ids"] = (
        list(test_df[cfg.ID_COLUMN]) if cfg.ID_COLUMN in test_df.columns else list(test_df.index)
    )
    results["test_predictions"] = []
    if results["best"]:
        results["test_predictions"] = list(predictors[results["best"]].predict(testing))
    else:
        logger.error("No model family could be fitted; skipping test predictions.")

    return results
