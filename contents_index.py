"""
Counting of file ownership from Debian "Contents" index lines.

Each line of a Contents index has the form:
    <path> <section/package1,...,section/packageN>
and every package named on a line owns that file once.
"""

from collections import Counter
from typing import Iterable, List, Tuple


def parse_contents_line(raw: str) -> List[str]:
    """
    Return the package names referenced by one Contents line.
    The line is split on its first space only, so everything after the path is the package field.
    Lines without a space and package refs without a section ("section/package") are skipped.
    """
    parts = raw.split(" ", 1)
    if len(parts) < 2:
        return []
    packages = []
    for ref in parts[1].strip().split(","):
        ref_parts = ref.split("/")
        if len(ref_parts) < 2:
            continue
        packages.append(ref_parts[1])
    return packages


def aggregate_suite(suite: str, lines: Iterable[str], counts: Counter) -> int:
    """
    Count every package reference of the suite's lines into counts, keyed "<suite>/<package>".
    counts is shared between suites, so the same package in two suites stays two entries.
    Returns how many references this suite added.
    """
    subtotal = 0
    for line in lines:
        for package in parse_contents_line(line):
            counts[f"{suite}/{package}"] += 1
            subtotal += 1
    return subtotal


def rank_packages(counts: Counter, n: int) -> List[Tuple[str, int]]:
    """
    Return the top-N packages in the descending file count order, equal counts by name
    """
    if n <= 0:
        return []
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]


def format_ranking(rows: Iterable[Tuple[str, int]]) -> str:
    return "\n".join(f"{rank}. {name}: {count}" for rank, (name, count) in enumerate(rows, 1))
