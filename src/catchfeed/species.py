"""Tracked species catalog and report shape normalization.

A report arrives either with five aggregate count columns or with itemized
``fish_entries`` (species, count, lengths, tag). Both shapes are resolved here,
once, into a list of ``SpeciesCatch``; nothing downstream looks at the raw
columns again.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

# Catalog order doubles as the tie-break order for a report's primary species.
SPECIES_COLUMNS: tuple[tuple[str, str], ...] = (
    ("red_drum_count", "Red Drum"),
    ("flounder_count", "Southern Flounder"),
    ("spotted_seatrout_count", "Spotted Seatrout"),
    ("weakfish_count", "Weakfish"),
    ("striped_bass_count", "Striped Bass"),
)

TRACKED_SPECIES: tuple[str, ...] = tuple(name for _, name in SPECIES_COLUMNS)

SPECIES_ALIASES: dict[str, str] = {
    "red drum": "Red Drum",
    "redfish": "Red Drum",
    "channel bass": "Red Drum",
    "puppy drum": "Red Drum",
    "flounder": "Southern Flounder",
    "southern flounder": "Southern Flounder",
    "spotted seatrout": "Spotted Seatrout",
    "spotted sea trout": "Spotted Seatrout",
    "speckled trout": "Spotted Seatrout",
    "specks": "Spotted Seatrout",
    "speck": "Spotted Seatrout",
    "seatrout": "Spotted Seatrout",
    "weakfish": "Weakfish",
    "gray trout": "Weakfish",
    "grey trout": "Weakfish",
    "squeteague": "Weakfish",
    "striped bass": "Striped Bass",
    "striper": "Striped Bass",
    "rockfish": "Striped Bass",
}

_LENGTH_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")


class SpeciesCatch(BaseModel):
    species: str
    count: int
    lengths: list[str] | None = None
    tag_number: str | None = None


@dataclass(frozen=True)
class AggregateCounts:
    """Report shape with only the five per-species count columns."""

    counts: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class ItemizedCatches:
    """Report shape with itemized species records."""

    catches: tuple[SpeciesCatch, ...]


CatchSource = AggregateCounts | ItemizedCatches


def canonical_species(name: str) -> str:
    """Map a species name or common alias to its catalog name.

    Unknown names are returned stripped but otherwise unchanged.
    """
    cleaned = name.strip()
    return SPECIES_ALIASES.get(cleaned.lower(), cleaned)


def _itemized_from(entries: Iterable[Any]) -> list[SpeciesCatch]:
    catches = []
    for entry in entries:
        if isinstance(entry, dict):
            species = entry.get("species")
            count = entry.get("count")
            lengths = entry.get("lengths")
            tag = entry.get("tag_number")
        else:
            species = getattr(entry, "species", None)
            count = getattr(entry, "count", None)
            lengths = getattr(entry, "lengths", None)
            tag = getattr(entry, "tag_number", None)
        if not species or not isinstance(count, int) or count <= 0:
            continue
        catches.append(
            SpeciesCatch(
                species=canonical_species(species),
                count=count,
                lengths=list(lengths) if lengths else None,
                tag_number=tag or None,
            )
        )
    return catches


def classify_report(report: Any) -> CatchSource:
    """Resolve a report (ORM row, schema, or mapping) into its source shape.

    Itemized entries win whenever at least one usable entry exists.
    """
    if isinstance(report, dict):
        entries = report.get("fish_entries") or []
        column = report.get
    else:
        entries = getattr(report, "fish_entries", None) or []
        column = lambda name, default=None: getattr(report, name, default)  # noqa: E731

    itemized = _itemized_from(entries)
    if itemized:
        return ItemizedCatches(catches=tuple(itemized))

    counts = []
    for attr, species in SPECIES_COLUMNS:
        value = column(attr, 0) or 0
        counts.append((species, int(value)))
    return AggregateCounts(counts=tuple(counts))


def species_list(source: CatchSource) -> list[SpeciesCatch]:
    """Canonical species list for a resolved source; zero counts are dropped."""
    if isinstance(source, ItemizedCatches):
        return list(source.catches)
    return [
        SpeciesCatch(species=species, count=count)
        for species, count in source.counts
        if count > 0
    ]


def resolve_catches(report: Any) -> list[SpeciesCatch]:
    """Shortcut for ``species_list(classify_report(report))``."""
    return species_list(classify_report(report))


def total_fish(catches: Sequence[SpeciesCatch]) -> int:
    return sum(c.count for c in catches)


def primary_species(catches: Sequence[SpeciesCatch]) -> str | None:
    """Species with the highest count; the first one listed wins ties."""
    if not catches:
        return None
    return max(catches, key=lambda c: c.count).species


def parse_length(raw: object) -> float | None:
    """Parse a free-form length ("28", '32"', "24.5 inches"). None if unparsable."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if raw > 0 else None
    if not isinstance(raw, str):
        return None
    match = _LENGTH_RE.match(raw)
    if match is None:
        return None
    value = float(match.group(1))
    return value if value > 0 else None


def largest_length(catch: SpeciesCatch) -> float | None:
    """Largest parsable length recorded on a catch, if any."""
    parsed = [v for v in (parse_length(raw) for raw in catch.lengths or []) if v is not None]
    return max(parsed) if parsed else None


def format_length(value: float) -> str:
    """Format inches for display: 32.0 -> '32"', 28.5 -> '28.5"'."""
    if float(value).is_integer():
        return f'{int(value)}"'
    return f'{value:g}"'
