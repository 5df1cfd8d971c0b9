import os, sys, subprocess
from argparse import ArgumentParser

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from pml.config import Config

def run(cmd):
    print(">>", " ".join(cmd))
    subprocess.check_call(cmd)

def main():
    ap = ArgumentParser()
    ap.add_argument("--tune", type=str, default="", help="Comma-separated families to tune first (e.g. random_forest)")
    ap.add_argument("--trials", type=int, default=Config.TUNE_TRIALS)
    ap.add_argument("--folds", type=int, default=Config.CV_FOLDS)
    ap.add_argument("--out", type=str, default=os.path.join(Config.REPORT_DIR, "predictions.csv"))
    ap.add_argument("--summary", type=str, default=os.path.join(Config.REPORT_DIR, "summary.md"))
    args = ap.parse_args()

    os.makedirs(Config.DATA_DIR, exist_ok=True)
    os.makedirs(Config.REPORT_DIR, exist_ok=True)

    # 1) Optional hyperparameter search per family
    for fam in [f.strip() for f in args.tune.split(",") if f.strip()]:
        run([sys.executable, "-m", "pml.tune", "--family", fam, "--trials", str(args.trials), "--folds", str(args.folds)])

    # 2) Train, compare & predict
    run([sys.executable, "-m", "pml.train", "--folds", str(args.folds), "--out", args.out, "--summary", args.summary])

    print(f"All done. Predictions -> {args.out}, summary -> {args.summary}")

if __name__ == "__main__":
    main()
