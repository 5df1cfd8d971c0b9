import argparse
import os
from dataclasses import replace

import pandas as pd

from .config import Config
from .logs import setup_logging
from .model import save_model
from .pipeline import run_pipeline


def config_from_args(args):
    cfg = Config()
    overrides = {
        "CV_FOLDS": args.folds,
        "RANDOM_STATE": args.seed,
        "SPLIT_FRACTION": args.split,
        "FIT_JOBS": args.jobs,
    }
    if args.families:
        overrides["FAMILIES"] = tuple(s.strip() for s in args.families.split(",") if s.strip())
    return replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def _fmt_pct(x):
    return f"{100.0*x:.2f}%" if pd.notna(x) else ""


def accuracy_table(results):
    rows = []
    for name, p in results["predictors"].items():
        rows.append({
            "family": name,
            "cv_accuracy": p.cv_accuracy,
            "train_accuracy": results["train_eval"][name].accuracy,
            "validation_accuracy": results["val_eval"][name].accuracy,
            "params": p.params,
        })
    df = pd.DataFrame(rows, columns=["family", "cv_accuracy", "train_accuracy", "validation_accuracy", "params"])
    if not df.empty:
        df = df.set_index("family").loc[results["ranking"]].reset_index()
    return df


def print_report(results):
    mask = results["mask"]
    print("=== Feature pruning ===")
    for name, cols in mask.dropped.items():
        print(f"{name:<15} dropped {len(cols)}")
    print(f"{'kept':<15} {len(mask.keep)}")

    for name in results["ranking"]:
        print(f"\n=== {name} ===")
        for split in ("train_eval", "val_eval"):
            ev = results[split][name]
            label = "training" if split == "train_eval" else "validation"
            print(f"-- {label}: accuracy {_fmt_pct(ev.accuracy)} over {ev.n_rows} rows")
            print(ev.confusion.to_string())

    if results["failures"]:
        print("\n=== Failed families ===")
        for name, err in results["failures"].items():
            print(f"{name}: {err}")

    print("\n=== Accuracy summary ===")
    table = accuracy_table(results)
    print(table.to_string(index=False, float_format=lambda x: f"{x:.4f}"))

    cmp = results["comparison"]
    if cmp is not None:
        print(f"\n=== Agreement on validation: {cmp.family_a} vs {cmp.family_b} ===")
        print(cmp.table.to_string())
        print(f"{cmp.family_a} right, {cmp.family_b} wrong: {cmp.a_only}")
        print(f"{cmp.family_b} right, {cmp.family_a} wrong: {cmp.b_only}")

    if results["best"]:
        print(f"\n=== Test predictions ({results['best']}) ===")
        print(" ".join(results["test_predictions"]))


def write_summary(results, path):
    md = ["# Model comparison", ""]
    md.append(f"Kept {len(results['mask'].keep)} features; dropped "
              + ", ".join(f"{k}={len(v)}" for k, v in results["mask"].dropped.items()))
    md.append("")
    table = accuracy_table(results).drop(columns=["params"])
    for c in ("cv_accuracy", "train_accuracy", "validation_accuracy"):
        table[c] = table[c].map(_fmt_pct)
    md.append(table.to_markdown(index=False))
    md.append("")
    if results["failures"]:
        md.append("## Failed families\n")
        md.extend(f"- {k}: {v}" for k, v in results["failures"].items())
        md.append("")
    cmp = results["comparison"]
    if cmp is not None:
        md.append(f"## Agreement on validation ({cmp.family_a} vs {cmp.family_b})\n")
        md.append(cmp.table.to_markdown())
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(md))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--folds", type=int, default=None, help=f"CV folds (default {Config.CV_FOLDS})")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--split", type=float, default=None, help="Training share of the labelled table")
    parser.add_argument("--families", type=str, default=None, help="Comma-separated subset of families")
    parser.add_argument("--jobs", type=int, default=None, help="Families fitted concurrently")
    parser.add_argument("--out", type=str, default=None, help="CSV of test predictions")
    parser.add_argument("--summary", type=str, default=None, help="Markdown summary path")
    args = parser.parse_args()

    setup_logging()
    cfg = config_from_args(args)
    results = run_pipeline(cfg)
    print_report(results)

    if results["best"]:
        save_model({"predictor": results["predictors"][results["best"]], "mask": results["mask"]},
                   cfg.MODEL_PATH)
        print(f"\nSaved {results['best']} model to {cfg.MODEL_PATH}")

    if args.out and results["best"]:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        out = pd.DataFrame({cfg.ID_COLUMN: results["test_ids"], "prediction": results["test_predictions"]})
        out.to_csv(args.out, index=False)
        print(f"Wrote {args.out}")
    if args.summary:
        write_summary(results, args.summary)
        print(f"Wrote {args.summary}")

if __name__ == "__main__":
    main()
