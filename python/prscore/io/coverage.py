"""
    Genome regions that were well genotyped in the cohort.

    Loci outside these regions cannot be told apart from homozygous reference calls, so the
    scorer imputes them instead of reading the genotype store.
"""

import bisect
import logging
from collections import defaultdict
from itertools import accumulate
from typing import Protocol

from prscore.errors import CoverageBedError
from prscore.utils.compress import open_text

logger = logging.getLogger(__name__)

BED_SKIP_PREFIXES = ("#", "track", "browser")


class Coverage(Protocol):
    def is_covered(self, contig: str, pos: int, ref: str) -> bool: ...


class AlwaysCovered:
    """Coverage used when no BED is supplied: every locus was genotyped."""

    def is_covered(self, contig: str, pos: int, ref: str) -> bool:  # noqa: ARG002
        return True


class CoveredRegions:
    """
    Covered intervals per contig, queried by binary search.

    Records are not merged: a locus is covered only when a single record contains it.
    Each contig keeps its record starts in sorted order alongside the running maximum
    of the record ends.

    Parameters
    ----------
    regions : dict[str, list[tuple[int, int]]]
        0-based half-open (start, end) intervals per contig, as in a BED file.
    """

    def __init__(self, regions: dict[str, list[tuple[int, int]]]):
        self._starts: dict[str, list[int]] = {}
        self._max_ends: dict[str, list[int]] = {}
        for contig, intervals in regions.items():
            records = sorted(intervals)
            self._starts[contig] = [start for start, _ in records]
            self._max_ends[contig] = list(accumulate((end for _, end in records), max))

    @classmethod
    def from_bed(cls, path: str) -> "CoveredRegions":
        """Read the first three columns of a BED file, which may be gzipped."""
        regions: dict[str, list[tuple[int, int]]] = defaultdict(list)
        with open_text(path) as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip() or line.startswith(BED_SKIP_PREFIXES):
                    continue

                fields = line.rstrip("\n").split("\t")
                if len(fields) < 3:
                    raise CoverageBedError(
                        f"{path} line {line_number}: expected at least 3 columns, got {len(fields)}"
                    )
                try:
                    start, end = int(fields[1]), int(fields[2])
                except ValueError:
                    raise CoverageBedError(
                        f"{path} line {line_number}: start and end must be integers"
                    ) from None
                if start < 0 or end < start:
                    raise CoverageBedError(
                        f"{path} line {line_number}: invalid interval {start}-{end}"
                    )
                regions[fields[0]].append((start, end))

        covered = cls(dict(regions))
        logger.info(
            "Read %s covered intervals on %s contigs from %s", len(covered), len(regions), path
        )
        return covered

    def __len__(self) -> int:
        return sum(len(starts) for starts in self._starts.values())

    def contains(self, contig: str, start: int, end: int) -> bool:
        """Whether the 0-based half-open interval [start, end) lies inside one covered record."""
        starts = self._starts.get(contig)
        if not starts:
            return False

        idx = bisect.bisect_right(starts, start) - 1
        if idx < 0:
            return False
        # Some record starting at or before `start` must also reach `end`
        return end <= self._max_ends[contig][idx]

    def is_covered(self, contig: str, pos: int, ref: str) -> bool:
        """Whether the reference bases of an allele at 1-based `pos` are all covered."""
        return self.contains(contig, pos - 1, pos - 1 + len(ref))