"""Configuration management for PromoterForge.

Settings come from defaults, an optional TOML file and command-line
arguments (which override the file). A configuration file looks like:

    [extraction]
    promotor_width = 1000
    default_strand = "+"
    sources = ["RefSeq", "Gnomon"]

    [parallel]
    max_workers = 8
    backend = "threads"

Example:
    >>> from promoterforge.config import Config
    >>> config = Config.load("promoterforge.toml")
    >>> config.extraction.promotor_width
    1000
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import attrs

from promoterforge.core.models import Strand
from promoterforge.errors import InvalidConfiguration

# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_PROMOTOR_WIDTH = 1000
DEFAULT_STRAND = "+"
DEFAULT_FEATURE_TYPE = "gene"
DEFAULT_GENE_BIOTYPE = "protein_coding"
DEFAULT_LINE_WIDTH = 80

DEFAULT_MAX_WORKERS = 1
DEFAULT_BACKEND = "threads"


# =============================================================================
# Validators
# =============================================================================


def _non_negative_int(instance: Any, attribute: attrs.Attribute, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidConfiguration(
            f"{attribute.name} must be a non-negative integer, got {value!r}"
        )


def _positive_int(instance: Any, attribute: attrs.Attribute, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidConfiguration(
            f"{attribute.name} must be a positive integer, got {value!r}"
        )


def _determined_strand(instance: Any, attribute: attrs.Attribute, value: Any) -> None:
    try:
        strand = Strand.parse(value)
    except ValueError:
        strand = Strand.UNKNOWN
    if not strand.is_determined:
        raise InvalidConfiguration(
            f"{attribute.name} must be '+' or '-', got {value!r}"
        )


def _one_of(*choices: str):
    def check(instance: Any, attribute: attrs.Attribute, value: Any) -> None:
        if value not in choices:
            raise InvalidConfiguration(
                f"{attribute.name} must be one of {', '.join(choices)}, got {value!r}"
            )

    return check


def _to_sources(value: Any) -> frozenset[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return frozenset([value])
    return frozenset(value)


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class ExtractionConfig:
    """Configuration for promoter extraction.

    Attributes:
        promotor_width: Bases upstream of the TSS to extract.
        default_strand: Strand given to features without one.
        feature_type: Feature type collapsed into loci.
        gene_biotype: Required gene biotype.
        sources: Allowed annotation sources (None = all).
        line_width: Bases per FASTA output line.
    """

    promotor_width: int = attrs.field(
        default=DEFAULT_PROMOTOR_WIDTH, validator=_non_negative_int
    )
    default_strand: str = attrs.field(default=DEFAULT_STRAND, validator=_determined_strand)
    feature_type: str = attrs.field(
        default=DEFAULT_FEATURE_TYPE, validator=_one_of(DEFAULT_FEATURE_TYPE)
    )
    gene_biotype: str = DEFAULT_GENE_BIOTYPE
    sources: frozenset[str] | None = attrs.field(default=None, converter=_to_sources)
    line_width: int = attrs.field(default=DEFAULT_LINE_WIDTH, validator=_positive_int)


@attrs.define
class ParallelConfig:
    """Configuration for parallel extraction.

    Attributes:
        max_workers: Number of worker threads (0 = one per CPU).
        backend: "serial" or "threads".
    """

    max_workers: int = attrs.field(
        default=DEFAULT_MAX_WORKERS, validator=_non_negative_int
    )
    backend: str = attrs.field(
        default=DEFAULT_BACKEND, validator=_one_of("serial", "threads")
    )


@attrs.define
class Config:
    """Main configuration container for PromoterForge.

    Attributes:
        extraction: Promoter extraction configuration.
        parallel: Parallel processing configuration.
    """

    extraction: ExtractionConfig = attrs.Factory(ExtractionConfig)
    parallel: ParallelConfig = attrs.Factory(ParallelConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a configuration from nested dictionaries.

        Raises:
            InvalidConfiguration: On unknown sections or keys, or bad values.
        """
        sections = {"extraction": ExtractionConfig, "parallel": ParallelConfig}
        unknown = set(data) - set(sections)
        if unknown:
            raise InvalidConfiguration(
                f"Unknown configuration section(s): {', '.join(sorted(unknown))}"
            )

        kwargs = {}
        for name, section_cls in sections.items():
            values = data.get(name, {})
            if not isinstance(values, dict):
                raise InvalidConfiguration(
                    f"[{name}] must be a table, got {type(values).__name__}"
                )
            known = {a.name for a in attrs.fields(section_cls)}
            bad = set(values) - known
            if bad:
                raise InvalidConfiguration(
                    f"Unknown key(s) in [{name}]: {', '.join(sorted(bad))}"
                )
            kwargs[name] = section_cls(**values)
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Config:
        """Load configuration from a TOML file.

        Args:
            path: Path to configuration file. If None, returns defaults.

        Returns:
            Loaded configuration object.

        Raises:
            InvalidConfiguration: If the file is missing or invalid.
        """
        if path is None:
            return cls()

        path = Path(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError:
            raise InvalidConfiguration(
                f"Configuration file not found: {path}", path=path
            ) from None
        except tomllib.TOMLDecodeError as e:
            raise InvalidConfiguration(
                f"Invalid configuration file {path}: {e}", path=path
            ) from e

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        data = attrs.asdict(self)
        sources = data["extraction"]["sources"]
        if sources is not None:
            data["extraction"]["sources"] = sorted(sources)
        return data
