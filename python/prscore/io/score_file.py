"""
    Read polygenic score definition files.

    A score definition starts with five free-text header lines, in order:
        name
        description
        citation
        genome build
        offset (a real number, added to every sample's final score)

    The remaining lines are headerless, tab-separated records with one effect allele per row:
        CHROM, POS, REF, ALT, BETA, AAF

    POS is 1-based, ALT is the effect allele, BETA the score coefficient and AAF the
    effect allele frequency in the population the score was derived from.
"""

import logging
from collections.abc import Iterable, Iterator
from itertools import islice
from typing import IO

from msgspec import Struct

from prscore.errors import ScoreFileFormatError
from prscore.utils.compress import open_text

logger = logging.getLogger(__name__)

N_HEADER_LINES = 5
N_RECORD_FIELDS = 6


class ScoreEntry(Struct, frozen=True):
    """One effect allele of a polygenic score."""

    contig: str
    pos: int
    ref: str
    alt: str
    beta: float
    aaf: float

    def __post_init__(self):
        if self.pos < 1:
            raise ValueError(f"pos must be 1-based and positive, got {self.pos}")
        if not self.ref or not self.alt:
            raise ValueError("ref and alt must be non-empty")
        if not 0.0 <= self.aaf <= 1.0:
            raise ValueError(f"aaf must be in [0, 1], got {self.aaf}")

    @property
    def end(self) -> int:
        """The last reference base spanned by this allele (1-based, inclusive)."""
        return self.pos + len(self.ref) - 1

    @property
    def locus_id(self) -> str:
        return f"{self.contig}:{self.pos}:{self.ref}:{self.alt}"

    @property
    def region(self) -> str:
        return f"{self.contig}:{self.pos}-{self.end}"


class ScoreFileHeader(Struct, frozen=True):
    """Metadata read from the first lines of a score definition file."""

    name: str
    description: str
    citation: str
    genome_build: str
    offset: float


def parse_header(lines: list[str]) -> ScoreFileHeader:
    if len(lines) < N_HEADER_LINES:
        raise ScoreFileFormatError(
            f"Score file header is truncated: expected {N_HEADER_LINES} lines, got {len(lines)}"
        )

    name, description, citation, genome_build, offset_str = (
        line.rstrip() for line in lines[:N_HEADER_LINES]
    )
    try:
        offset = float(offset_str)
    except ValueError:
        raise ScoreFileFormatError(
            f"Line {N_HEADER_LINES}: offset must be a number, got {offset_str!r}"
        ) from None

    return ScoreFileHeader(
        name=name,
        description=description,
        citation=citation,
        genome_build=genome_build,
        offset=offset,
    )


def parse_score_entry(line: str, line_number: int | None = None) -> ScoreEntry:
    """Parse one tab-separated score record."""
    where = f"Line {line_number}" if line_number is not None else "Record"
    fields = line.rstrip().split("\t")
    if len(fields) != N_RECORD_FIELDS:
        raise ScoreFileFormatError(
            f"{where}: expected {N_RECORD_FIELDS} tab-separated fields, got {len(fields)}"
        )

    contig, pos, ref, alt, beta, aaf = fields
    try:
        return ScoreEntry(
            contig=contig,
            pos=int(pos),
            ref=ref,
            alt=alt,
            beta=float(beta),
            aaf=float(aaf),
        )
    except ValueError as e:
        raise ScoreFileFormatError(f"{where}: {e}") from e


def parse_score_entries(lines: Iterable[str], first_line_number: int = 1) -> Iterator[ScoreEntry]:
    """Lazily parse score records, skipping blank lines."""
    for line_number, line in enumerate(lines, start=first_line_number):
        if not line.strip():
            continue
        yield parse_score_entry(line, line_number)


class ScoreFile:
    """
    A score definition file opened for a single pass over its records.

    The header is read on open; iterating yields ScoreEntry records lazily.
    Use as a context manager to release the underlying file handle.

    Parameters
    ----------
    path : str
        Path to the score definition file; gzip-compressed files are decompressed.
    """

    def __init__(self, path: str):
        self.path = path
        self._fh: IO[str] = open_text(path)
        try:
            header_lines = list(islice(self._fh, N_HEADER_LINES))
            self.header = parse_header(header_lines)
        except Exception:
            self._fh.close()
            raise

        logger.debug(
            "Opened score file %s (%s, build %s)", path, self.header.name, self.header.genome_build
        )

    @property
    def offset(self) -> float:
        return self.header.offset

    def __iter__(self) -> Iterator[ScoreEntry]:
        return parse_score_entries(self._fh, first_line_number=N_HEADER_LINES + 1)

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> "ScoreFile":
        return self

    def __exit__(self, *exc_info):
        self.close()