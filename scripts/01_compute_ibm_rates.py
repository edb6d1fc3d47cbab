import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import argparse
import warnings

from ibm_rates.config import (
    ALPHA,
    CI_METHOD,
    CI_METHODS,
    COUNT_COL,
    OUTPUTS_DIR,
    POP_COL,
    RAW_FILE,
    SCALE,
    WEIGHT_COL,
)
from ibm_rates.data.ingest import load_stratified_table
from ibm_rates.data.select import parse_filters, select_strata
from ibm_rates.estimation.estimator import compute_dsr_and_rr_for_subset
from ibm_rates.utils.logging import run_metadata, write_json


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Age-adjusted IBM rates for two groups and their rate ratio (SEER CIs)."
    )
    parser.add_argument("--input", type=Path, default=RAW_FILE, help="Stratified table (.xlsx, .xls or .csv).")
    parser.add_argument("--nrows", type=int, default=None, help="Optional: read only the first N rows (for tests).")
    parser.add_argument(
        "--group1",
        action="append",
        default=[],
        metavar="COL=VALUE",
        help="Row filter for group 1 (repeatable; all filters must match).",
    )
    parser.add_argument(
        "--group2",
        action="append",
        default=[],
        metavar="COL=VALUE",
        help="Row filter for group 2 (repeatable; all filters must match).",
    )
    parser.add_argument("--label1", default="Group 1", help="Display label for group 1.")
    parser.add_argument("--label2", default="Group 2", help="Display label for group 2.")
    parser.add_argument("--subset-label", default="Subset", help="Label used in the rate-ratio measure name.")
    parser.add_argument("--count-col", default=COUNT_COL)
    parser.add_argument("--pop-col", default=POP_COL)
    parser.add_argument("--weight-col", default=WEIGHT_COL)
    parser.add_argument("--alpha", type=float, default=ALPHA, help="Two-sided significance level.")
    parser.add_argument("--scale", type=float, default=SCALE, help="Display scale for rates (default: per 100,000).")
    parser.add_argument(
        "--no-normalize-weights",
        action="store_true",
        help="Use the weight column as-is instead of dividing by its sum.",
    )
    parser.add_argument("--ci-method", choices=CI_METHODS, default=CI_METHOD)
    parser.add_argument("--outdir", type=Path, default=OUTPUTS_DIR, help="Output directory (default: outputs/).")
    args = parser.parse_args()

    if not args.input.exists():
        raise SystemExit(f"Input file not found: {args.input}")
    if args.nrows is not None and args.nrows <= 0:
        raise SystemExit("--nrows must be a positive integer.")
    if not args.group1 or not args.group2:
        raise SystemExit("--group1 and --group2 each need at least one COL=VALUE filter.")

    try:
        filters1 = parse_filters(args.group1)
        filters2 = parse_filters(args.group2)
    except ValueError as exc:
        raise SystemExit(str(exc))

    df = load_stratified_table(args.input, nrows=args.nrows)
    missing = [c for c in set(filters1) | set(filters2) if c not in df.columns]
    if missing:
        raise SystemExit(f"Filter columns not found in {args.input}: {sorted(missing)}")
    value_cols = [args.count_col, args.pop_col, args.weight_col]
    missing = [c for c in value_cols if c not in df.columns]
    if missing:
        raise SystemExit(
            f"Count/population/weight columns not found in {args.input}: {missing}; "
            f"available: {df.columns.astype(str).tolist()}"
        )

    idx1 = select_strata(df, filters1)
    idx2 = select_strata(df, filters2)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        result = compute_dsr_and_rr_for_subset(
            df,
            idx1,
            idx2,
            args.label1,
            args.label2,
            args.subset_label,
            count_col=args.count_col,
            pop_col=args.pop_col,
            weight_col=args.weight_col,
            alpha=args.alpha,
            scale=args.scale,
            normalize_weights=not args.no_normalize_weights,
            ci_method=args.ci_method,
        )
    for w in caught:
        print(f"WARNING: {w.message}", file=sys.stderr)

    tables_dir = args.outdir / "tables"
    logs_dir = args.outdir / "logs"
    tables_dir.mkdir(parents=True, exist_ok=True)

    rates_csv = tables_dir / "ibm_rates.csv"
    ratio_csv = tables_dir / "ibm_rate_ratio.csv"
    result.rates_frame().to_csv(rates_csv, index=False)
    result.ratio_frame().to_csv(ratio_csv, index=False)

    meta_json = logs_dir / "ibm_run_metadata.json"
    write_json(
        meta_json,
        run_metadata(
            input_file=str(args.input),
            nrows=args.nrows,
            group1_filters=filters1,
            group2_filters=filters2,
            group1_rows=idx1.tolist(),
            group2_rows=idx2.tolist(),
            columns={"count": args.count_col, "population": args.pop_col, "weight": args.weight_col},
            alpha=args.alpha,
            scale=args.scale,
            normalize_weights=not args.no_normalize_weights,
            ci_method=args.ci_method,
            warnings=list(result.warnings),
            rates_csv=str(rates_csv),
            ratio_csv=str(ratio_csv),
        ),
    )

    print(f"Wrote {rates_csv}")
    print(f"Wrote {ratio_csv}")
    print(f"Wrote {meta_json}")


if __name__ == "__main__":
    main()
