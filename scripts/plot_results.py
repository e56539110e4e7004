# scripts/plot_results.py
import argparse
from nr_bler.plots import plot_multi_from_files

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--files", nargs="+", required=True, help="BLER .txt files and/or sweep .json results")
    ap.add_argument("--labels", nargs="*", default=None, help="Legend labels (optional)")
    ap.add_argument("--out", default="results/BLER_vs_SNR_overlay.png", help="Output PNG")
    ap.add_argument("--title", default="BLER vs Es/N0 (overlay)", help="Figure title")
    ap.add_argument("--show", action="store_true", help="Show window")
    args = ap.parse_args()

    plot_multi_from_files(args.files, labels=args.labels, title=args.title, save_path=args.out, show=args.show)
    print("[info] plot saved to", args.out)

if __name__ == "__main__":
    main()
