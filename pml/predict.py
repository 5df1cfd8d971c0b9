from argparse import ArgumentParser
import pandas as pd

from .config import Config
from .data import read_table
from .logs import setup_logging
from .model import load_model


def predict_table(bundle, test_df, id_column=None):
    """Ordered predictions for ``test_df`` using a saved {predictor, mask} bundle."""
    id_column = id_column or Config.ID_COLUMN
    predictor, mask = bundle["predictor"], bundle["mask"]
    X = mask.apply(test_df)
    ids = test_df[id_column] if id_column in test_df.columns else pd.Series(test_df.index)
    return pd.DataFrame({
        id_column: ids.to_numpy(),
        "prediction": predictor.predict(X),
    })


def _to_fixed_width(df: pd.DataFrame) -> str:
    cols = list(df.columns)
    col_widths = {c: max(len(c), *(len(str(v)) for v in df[c].astype(str))) for c in cols}
    header = "  ".join(f"{c:<{col_widths[c]}}" for c in cols)
    sep = "  ".join("-" * col_widths[c] for c in cols)
    lines = [header, sep]
    for _, row in df.iterrows():
        lines.append("  ".join(f"{str(row[c]):<{col_widths[c]}}" for c in cols))
    return "\n".join(lines)


def _detect_out_format(path: str | None, forced: str | None) -> str:
    if forced: return forced
    if not path: return "console"
    p = path.lower()
    if p.endswith(".tsv"): return "tsv"
    if p.endswith(".md"):  return "md"
    if p.endswith(".txt"): return "txt"
    return "csv"


def write_predictions(out: pd.DataFrame, path: str, fmt: str) -> None:
    if fmt == "tsv":
        out.to_csv(path, index=False, sep="\t")
    elif fmt == "md":
        with open(path, "w", encoding="utf-8") as f:
            f.write(out.to_markdown(index=False))
    elif fmt == "txt":
        with open(path, "w", encoding="utf-8") as f:
            f.write(_to_fixed_width(out))
    else:
        out.to_csv(path, index=False)


def main():
    parser = ArgumentParser()
    parser.add_argument("--model", type=str, default=Config.MODEL_PATH)
    parser.add_argument("--input", type=str, default=Config.TEST_URL, help="Test table path or URL")
    parser.add_argument("--out", type=str, default=None, help="Path to save output (extension decides default format)")
    parser.add_argument("--out-format", type=str, choices=["csv", "tsv", "md", "txt"], default=None,
                        help="Force an output format: csv/tsv/md/txt (overrides extension)")
    args = parser.parse_args()

    setup_logging()
    cfg = Config()
    bundle = load_model(args.model)
    out = predict_table(bundle, read_table(args.input, cfg), cfg.ID_COLUMN)

    print(out.to_string(index=False))
    fmt = _detect_out_format(args.out, args.out_format)
    if args.out:
        write_predictions(out, args.out, fmt)
        print(f"\nSaved predictions to {args.out} ({fmt})")

if __name__ == "__main__":
    main()
