"""Genotype stores: where per-sample effect allele dosages come from."""

import logging
from pathlib import Path
from typing import Any, Protocol

import numpy as np
from cyvcf2 import VCF  # type: ignore
from msgspec import Struct

from prscore.errors import GenotypeStoreError
from prscore.prs.impute import DosageVector

logger = logging.getLogger(__name__)

PASSING_FILTERS = (None, "PASS", ".")
INDEX_SUFFIXES = (".tbi", ".csi")

# cyvcf2 genotype array code for an uncalled allele
MISSING_ALLELE = -1


class MatchedVariant(Struct, frozen=True):
    """
    A genotype store record matching a requested REF/ALT pair.

    Parameters
    ----------
    contig : str
    pos : int
        1-based position of the record.
    ref : str
    alts : list[str]
        All alternate alleles of the record.
    filter : str | None
        The record's FILTER value; None when the record passed.
    record : Any
        The store-specific record, passed back to `raw_dosages`.
    """

    contig: str
    pos: int
    ref: str
    alts: list[str]
    filter: str | None
    record: Any

    @property
    def passes_filter(self) -> bool:
        return self.filter in PASSING_FILTERS

    def alt_index(self, alt: str) -> int:
        """0-based index of `alt` among the record's alternate alleles."""
        return self.alts.index(alt)


class GenotypeStore(Protocol):
    samples: list[str]

    @property
    def n_samples(self) -> int: ...

    def find_variant(self, contig: str, pos: int, ref: str, alt: str) -> MatchedVariant | None: ...

    def raw_dosages(self, variant: MatchedVariant, alt: str) -> DosageVector: ...


def allele_dosages(alleles: np.ndarray, alt_index: int) -> DosageVector:
    """
    Count copies of one alternate allele per sample.

    Parameters
    ----------
    alleles : np.ndarray
        (n_samples, ploidy) allele codes: 0 for REF, i for the i-th ALT, -1 for an uncalled
        allele, -2 for padding of samples with a lower ploidy.
    alt_index : int
        0-based index of the alternate allele to count.

    Returns
    -------
    DosageVector
        Samples with any uncalled allele are missing.
    """
    alleles = np.asarray(alleles)
    if alleles.ndim != 2:
        raise ValueError(f"Expected an (n_samples, ploidy) allele array, got shape {alleles.shape}")

    # cyvcf2 numbers ALT alleles from 1
    values = np.count_nonzero(alleles == alt_index + 1, axis=1).astype(np.float64)
    missing = np.any(alleles == MISSING_ALLELE, axis=1)
    return DosageVector(values, missing)


class VcfGenotypeStore:
    """
    Genotypes in an indexed VCF or BCF file, read with cyvcf2.

    Parameters
    ----------
    path : str
        Path to a bgzipped VCF or a BCF file, with a .tbi or .csi index alongside.
    """

    def __init__(self, path: str):
        self.path = path
        if not Path(path).exists():
            raise GenotypeStoreError(f"Genotype file {path} does not exist")
        if not any(Path(path + suffix).exists() for suffix in INDEX_SUFFIXES):
            raise GenotypeStoreError(f"Genotype file {path} has no .tbi or .csi index")

        try:
            self._vcf = VCF(path, lazy=True)
        except OSError as e:
            raise GenotypeStoreError(f"Could not open genotype file {path}: {e}") from e

        self.samples: list[str] = list(self._vcf.samples)
        if not self.samples:
            self._vcf.close()
            raise GenotypeStoreError(f"Genotype file {path} contains no samples")

        self._contigs = set(self._vcf.seqnames)

        logger.info("Opened %s with %s samples", path, len(self.samples))

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    def find_variant(self, contig: str, pos: int, ref: str, alt: str) -> MatchedVariant | None:
        """
        Find the record at contig:pos with REF `ref` and `alt` among its ALTs.

        Returns
        -------
        MatchedVariant | None
            The first matching record, or None if the store has no such variant.
        """
        if contig not in self._contigs:
            return None

        region = f"{contig}:{pos}-{pos + len(ref) - 1}"
        for variant in self._vcf(region):
            if variant.POS != pos or variant.REF != ref:
                continue
            if alt in variant.ALT:
                return MatchedVariant(
                    contig=variant.CHROM,
                    pos=variant.POS,
                    ref=variant.REF,
                    alts=list(variant.ALT),
                    filter=variant.FILTER,
                    record=variant,
                )
        return None

    def raw_dosages(self, variant: MatchedVariant, alt: str) -> DosageVector:
        """Dosages of `alt` in each sample, missing where any allele call is unresolved."""
        genotype = variant.record.genotype
        if genotype is None:
            return DosageVector.empty(self.n_samples)

        # The last column flags phasing
        alleles = genotype.array()[:, :-1]
        return allele_dosages(alleles, variant.alt_index(alt))

    def close(self) -> None:
        self._vcf.close()

    def __enter__(self) -> "VcfGenotypeStore":
        return self

    def __exit__(self, *exc_info):
        self.close()


class InMemoryGenotypeStore:
    """
    Genotypes held in memory, keyed by (contig, pos, ref, alt).

    Parameters
    ----------
    samples : list[str]
        Sample identifiers, in dosage order.
    dosages : dict[tuple[str, int, str, str], list[float]]
        Raw effect allele dosages per variant, nan marking a missing genotype.
    filters : dict[tuple[str, int, str, str], str], optional
        FILTER values of variants that did not pass.
    """

    def __init__(
        self,
        samples: list[str],
        dosages: dict[tuple[str, int, str, str], list[float]],
        filters: dict[tuple[str, int, str, str], str] | None = None,
    ):
        self.samples = list(samples)
        self._dosages = {key: np.asarray(value, dtype=np.float64) for key, value in dosages.items()}
        self._filters = filters or {}

        for key, value in self._dosages.items():
            if len(value) != len(self.samples):
                raise ValueError(
                    f"Variant {key} has {len(value)} dosages, expected {len(self.samples)}"
                )

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    def find_variant(self, contig: str, pos: int, ref: str, alt: str) -> MatchedVariant | None:
        key = (contig, pos, ref, alt)
        if key not in self._dosages:
            return None
        return MatchedVariant(
            contig=contig,
            pos=pos,
            ref=ref,
            alts=[alt],
            filter=self._filters.get(key),
            record=key,
        )

    def raw_dosages(self, variant: MatchedVariant, alt: str) -> DosageVector:
        return DosageVector.from_floats(self._dosages[variant.record])

    def close(self) -> None:
        pass

    def __enter__(self) -> "InMemoryGenotypeStore":
        return self

    def __exit__(self, *exc_info):
        self.close()
