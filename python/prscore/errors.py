"""Exceptions raised by prscore.

Everything raised on purpose derives from PRSError, so the command line can report
the whole family as one fatal error class.
"""


class PRSError(Exception):
    """Base class for fatal polygenic scoring errors."""


class ScoreFileFormatError(PRSError):
    """A score definition file is truncated or contains a malformed record."""


class GenotypeStoreError(PRSError):
    """The genotype store could not be opened or queried."""


class CoverageBedError(PRSError):
    """A coverage BED file could not be parsed."""


class NoScoredLociError(PRSError):
    """The score definition contained no loci, so no mean can be taken."""


class ConfigError(PRSError):
    """A scoring configuration file is invalid."""
