#!/usr/bin/env python3
"""Import rows from a CSV into one admin collection. Header row = field names."""
import csv
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src", "lambda"))

os.environ.setdefault("AWS_REGION", "us-east-1")


def parse_csv(path: str) -> list:
    """
    Read rows as (line number, dict) pairs. Blank cells are dropped so optional
    fields stay unset; rows with nothing left are skipped.
    """
    rows = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            data = {(k or "").strip(): v.strip() for k, v in row.items() if k and v is not None and v.strip()}
            if data:
                rows.append((reader.line_num, data))
    return rows


def main():
    if len(sys.argv) != 3:
        print(f"usage: {sys.argv[0]} <table> <file.csv>")
        sys.exit(2)
    table, csv_path = sys.argv[1], sys.argv[2]
    if not os.environ.get("TABLE_NAME"):
        print("TABLE_NAME not set")
        sys.exit(1)
    if not os.path.exists(csv_path):
        print(f"File not found: {csv_path}")
        sys.exit(1)

    from api.resource import createResource
    from api.schemas import isKnownTable
    from api.store import RowStore

    if not isKnownTable(table):
        print(f"Unknown table: {table}")
        sys.exit(1)
    rows = parse_csv(csv_path)
    if not rows:
        print("No valid rows found")
        sys.exit(1)
    print(f"Parsed {len(rows)} rows for {table}")

    store = RowStore()
    created = 0
    failed = []
    for line, data in rows:
        # no cached views to invalidate from a script
        result = createResource(store, table, "", data, revalidate=lambda path: None)
        if result["success"]:
            created += 1
        else:
            failed.append(line)
    print(f"Created: {created}")
    if failed:
        print("Failed CSV lines:", ", ".join(str(n) for n in failed))
    print("Done.")


if __name__ == "__main__":
    main()
