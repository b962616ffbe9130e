import argparse
from pathlib import Path
import sys

import numpy as np
import pandas as pd

# Add project root to sys.path to allow for package imports
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))

from sales_dashboard.utils.logger import get_logger, setup_logging

log = get_logger("script.generate_dirty_data")

OUTPUT_FILE = project_root / "data" / "sample-dirty-data.csv"

CUSTOMERS = [
    "John Smith", "Mary Johnson", "Bob Wilson", "Alice Brown", "Charlie Davis",
    "Diana Evans", "Edward Frank", "Fiona Green", "George Hill", "Helen Ivy",
    "Ivan Jones", "Julia King", "Kevin Lee", "Laura Miller", "Mike Nelson",
    "Nancy Owen", "Oscar Price", "Penny Quinn", "Quinn Reed", "Rachel Stone",
]

PRICES = {
    "Laptop": 999.99,
    "Phone": 699.0,
    "Tablet": 449.99,
    "Monitor": 299.99,
    "Keyboard": 79.99,
    "Mouse": 29.99,
    "Headphones": 149.99,
    "Webcam": 89.99,
    "Speaker": 199.99,
    "Printer": 249.99,
    "Router": 129.99,
    "SSD Drive": 119.99,
    "USB Hub": 39.99,
    "Power Bank": 49.99,
    "Smart Watch": 299.99,
}

REGIONS = ["North", "South", "East", "West", "Central"]

HEADER = ["Date", "Customer", "Product", "Quantity", "Unit Price", "Total", "Region"]


def whitespace_issue(rng: np.random.Generator, value: str) -> str:
    variants = [
        lambda s: f"  {s}  ",
        lambda s: f"   {s}",
        lambda s: f"{s}   ",
        lambda s: s.replace(" ", "  ", 1),
        lambda s: f"\t{s}",
    ]
    return variants[rng.integers(len(variants))](value)


def case_issue(rng: np.random.Generator, value: str) -> str:
    variants = [
        str.lower,
        str.upper,
        str.title,
        lambda s: "".join(c.lower() if i % 2 == 0 else c.upper() for i, c in enumerate(s)),
    ]
    return variants[rng.integers(len(variants))](value)


def generate_rows(n_rows: int, seed: int) -> list:
    rng = np.random.default_rng(seed)
    start = np.datetime64("2024-01-01")
    products = list(PRICES)
    rows = []
    clean_pool = []  # rows reused as exact duplicates

    for i in range(n_rows):
        date = str(start + np.timedelta64(int(rng.integers(366)), "D"))
        customer = CUSTOMERS[rng.integers(len(CUSTOMERS))]
        product = products[rng.integers(len(products))]
        quantity = int(rng.integers(1, 21))
        unit_price = PRICES[product]
        total = f"{quantity * unit_price:.2f}"
        region = REGIONS[rng.integers(len(REGIONS))]

        roll = rng.random()
        if roll < 0.05 and clean_pool:
            rows.append(list(clean_pool[rng.integers(len(clean_pool))]))
            continue
        if roll < 0.03:
            rows.append([date, "", "", "", "", "", ""])
            continue
        if roll < 0.08:
            customer = ""
        if roll > 0.92:
            quantity, total = "", ""
        if roll > 0.96:
            region = ""
        if roll > 0.97:
            product = ""

        if customer and rng.random() < 0.10:
            customer = whitespace_issue(rng, customer)
        if customer and rng.random() < 0.08:
            customer = case_issue(rng, customer)
        if product and rng.random() < 0.10:
            product = whitespace_issue(rng, product)
        if product and rng.random() < 0.12:
            product = case_issue(rng, product)
        if region and rng.random() < 0.15:
            region = case_issue(rng, region)
        if region and rng.random() < 0.05:
            region = whitespace_issue(rng, region)

        row = [date, customer, product, quantity, unit_price, total, region]
        rows.append(row)
        if i % 50 == 0 and customer and product and quantity != "" and region:
            clean_pool.append(row)

    return rows


def main():
    parser = argparse.ArgumentParser(description="Write a sample sales CSV with typical data-quality defects.")
    parser.add_argument("--rows", type=int, default=5000)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--output", type=Path, default=OUTPUT_FILE)
    args = parser.parse_args()
    setup_logging()

    rows = generate_rows(args.rows, args.seed)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=HEADER).to_csv(args.output, index=False)
    log.info(f"Generated {len(rows)} rows of dirty data")
    log.info(f"Output file: {args.output}")


if __name__ == "__main__":
    main()
