import csv
import io
import os
import re
from collections import Counter

from .extractor import ROW_FIELDS


def _write_rows(file, rows):
    writer = csv.DictWriter(file, fieldnames=ROW_FIELDS, lineterminator="\n", extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)


def to_csv(rows):
    buf = io.StringIO()
    _write_rows(buf, rows)
    return buf.getvalue().rstrip("\n")


def write_csv(path, rows):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, mode="w", encoding="utf-8", newline="") as file:
        _write_rows(file, rows)
    return path


def export_filename(entity_name=None):
    name = re.sub(r"\s+", "_", entity_name) if entity_name else "results"
    return f"{name}_hot_wallets.csv"


def filter_results(rows, chain=None):
    if not chain:
        return list(rows)
    return [r for r in rows if r['chain'] == chain]


def count_by_chain(rows):
    counts = Counter(r['chain'] for r in rows)
    return dict(sorted(counts.items()))
