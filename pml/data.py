import os
from urllib.parse import urlparse

import pandas as pd
import requests

from .config import Config
from .errors import SchemaMismatchError
from .logs import get_logger

logger = get_logger(__name__)


# helpers
def _csv_path(name, cfg=None):
    cfg = cfg or Config()
    return os.path.join(cfg.DATA_DIR, name)


def _cache_name(source):
    name = os.path.basename(urlparse(source).path)
    return name or "download.csv"


def _fetch(source, cfg):
    """Download ``source`` into the data dir once; later calls reuse the file."""
    path = _csv_path(_cache_name(source), cfg)
    if os.path.exists(path):
        logger.info(f"Using cached {path}")
        return path
    os.makedirs(cfg.DATA_DIR, exist_ok=True)
    logger.info(f"Downloading {source}")
    r = requests.get(source, timeout=cfg.DOWNLOAD_TIMEOUT)
    r.raise_for_status()
    with open(path, "wb") as f:
        f.write(r.content)
    return path


def read_table(source, cfg=None):
    """Read a delimited table from a local path or a remote URL."""
    cfg = cfg or Config()
    path = source if os.path.exists(source) else _fetch(source, cfg)
    return pd.read_csv(path, na_values=list(cfg.NA_VALUES), keep_default_na=True, low_memory=False)


#  TABLES
def load_tables(cfg=None):
    cfg = cfg or Config()
    train_df = read_table(cfg.TRAIN_URL, cfg)
    test_df = read_table(cfg.TEST_URL, cfg)
    if cfg.TARGET not in train_df.columns:
        raise SchemaMismatchError(
            f"Training table missing label column: {cfg.TARGET}.", columns=[cfg.TARGET]
        )
    logger.info(f"Loaded training {train_df.shape} and testing {test_df.shape}")
    return train_df, test_df
