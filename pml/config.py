from dataclasses import dataclass
import os


@dataclass
class Config:
    TRAIN_URL: str = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv"
    TEST_URL: str = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-testing.csv"
    DATA_DIR: str = os.getenv("PML_DATA_DIR", "data")
    NA_VALUES: tuple = ("NA", "", "#DIV/0!")
    DOWNLOAD_TIMEOUT: int = 60

    TARGET: str = "classe"
    ID_COLUMN: str = "problem_id"     # testing table only
    RANDOM_STATE: int = 1234
    SPLIT_FRACTION: float = 0.60      # share of rows kept for training

    # feature pruning
    NA_THRESHOLD: float = 0.30        # drop when missing fraction > threshold
    ID_LEADING_COLUMNS: int = 7       # row no., user, 3 timestamps, new_window, num_window
    NZV_FREQ_CUT: float = 95 / 5
    NZV_UNIQUE_CUT: float = 10.0      # percent
    CORR_CUTOFF: float = 0.75

    # training
    CV_FOLDS: int = 10
    FAMILIES: tuple = ("linear_discriminant", "random_forest", "gradient_boosting", "naive_bayes")
    FIT_JOBS: int = 1                 # families fitted concurrently
    CV_JOBS: int = -1                 # folds evaluated concurrently inside a family
    BEST_PARAMS_PATH: str = "artifacts/best_params.json"
    MODEL_PATH: str = "artifacts/best_model.joblib"

    TUNE_TRIALS: int = 30
    TUNE_TIMEOUT: int | None = None   # seconds

    REPORT_DIR: str = "reports"
