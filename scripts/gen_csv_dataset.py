#!/usr/bin/env python3
"""Dataset generation script for load testing.

Generates a synthetic CSV in the format the bulk loader expects:
- Row 1: Header row (COLUMN1..COLUMN5)
- Row 2+: Data rows, with an optional share of empty cells

The output can be pointed at by application.csv_file_path to exercise a
full run against a scratch database.
"""
from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path

import pandas as pd

DEFAULT_COLUMNS = ("COLUMN1", "COLUMN2", "COLUMN3", "COLUMN4", "COLUMN5")
CATEGORIES = ("DUR", "QTR", "ANN", "ADJ", "REV")


def generate_rows(rows: int, empty_ratio: float = 0.0, seed: int = 42) -> pd.DataFrame:
    """Generate a DataFrame of string cells.

    Args:
        rows: Number of data rows to generate
        empty_ratio: Probability that a non-key cell is left empty
        seed: Random seed for reproducible data
    """
    rng = random.Random(seed)

    def maybe_empty(value: str) -> str:
        return "" if empty_ratio and rng.random() < empty_ratio else value

    data = {
        # COLUMN1 is a row key and never empty
        "COLUMN1": [f"K{i:08d}" for i in range(1, rows + 1)],
        "COLUMN2": [maybe_empty(rng.choice(CATEGORIES)) for _ in range(rows)],
        "COLUMN3": [maybe_empty(f"{rng.uniform(0, 10000):.2f}") for _ in range(rows)],
        "COLUMN4": [maybe_empty(str(rng.randint(1, 1000))) for _ in range(rows)],
        "COLUMN5": [maybe_empty(f"2024-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}") for _ in range(rows)],
    }
    return pd.DataFrame(data, columns=list(DEFAULT_COLUMNS))


def create_csv_file(output_path: Path, rows: int, empty_ratio: float = 0.0, seed: int = 42) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = generate_rows(rows, empty_ratio, seed)
    df.to_csv(output_path, index=False, encoding="utf-8")

    print(f"Created CSV file: {output_path}")
    print(f"  Rows: {rows} (+ 1 header row)")
    print(f"  Columns: {len(df.columns)}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic CSV datasets for bulk load testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default 50k rows
  %(prog)s data/dur_qtr_load.csv

  # 250k rows with 5%% empty cells
  %(prog)s large.csv --rows 250000 --empty-ratio 0.05
        """,
    )
    parser.add_argument("output", type=Path, help="Output CSV file path")
    parser.add_argument("--rows", type=int, default=50_000, help="Number of data rows (default: 50,000)")
    parser.add_argument("--empty-ratio", type=float, default=0.0, help="Share of empty cells (default: 0)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be generated")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0.0 <= args.empty_ratio < 1.0:
        print("Error: --empty-ratio must be in [0, 1)", file=sys.stderr)
        return 1

    print("Dataset generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Rows: {args.rows:,}")
    print(f"  Empty ratio: {args.empty_ratio}")
    print(f"  Random seed: {args.seed}")

    if args.dry_run:
        print("\n[DRY RUN] Would generate the file but not creating it.")
        return 0

    try:
        create_csv_file(args.output, args.rows, args.empty_ratio, args.seed)
    except OSError as e:
        print(f"\nError generating dataset: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
