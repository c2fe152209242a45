"""Ingredient name and unit canonicalization.

Two ingredient strings name the same ingredient iff :func:`normalize` maps them to the
same value. Units are grouped into families so that the aggregator only ever sums
quantities that are measured the same way; unknown units fall into an ``other`` family
keyed by the unit string itself.

The plural, synonym and unit tables are data, loaded from
``mise/engine/data/ingredient_tables.json`` or from ``MISE_INGREDIENT_TABLES_PATH``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from mise.config import get_settings
from mise.errors import InvalidArgument

logger = logging.getLogger(__name__)

VOLUME = "volume"
WEIGHT = "weight"
COUNT = "count"
UNRECOGNIZED = "other"
KNOWN_FAMILIES = (VOLUME, WEIGHT, COUNT)

_SIBILANT_ES = ("ches", "shes", "sses", "xes", "zes")


@dataclass(frozen=True)
class UnitFamily:
    """Unit family of a raw unit string.

    ``unit`` is the canonical unit ("cup", "g") for recognized units and the
    normalized raw string otherwise. ``factor`` converts one ``unit`` into the
    family base (ml, g, each) and is ``None`` for unrecognized units.
    """

    name: str
    unit: str
    factor: Optional[float] = None

    @property
    def recognized(self) -> bool:
        return self.name != UNRECOGNIZED

    @property
    def key(self) -> str:
        """Grouping identity: the family name, or ``other:<unit>`` when unrecognized."""

        if self.recognized:
            return self.name
        return f"{UNRECOGNIZED}:{self.unit}"


def _clean(value: str) -> str:
    return " ".join(value.lower().split())


@dataclass(frozen=True)
class IngredientTables:
    """Lookup tables driving normalization."""

    plurals: Mapping[str, str] = field(default_factory=dict)
    invariant: FrozenSet[str] = frozenset()
    synonyms: Mapping[str, str] = field(default_factory=dict)
    units: Mapping[str, Tuple[str, str, float]] = field(default_factory=dict)
    exact_units: Mapping[str, Tuple[str, str, float]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IngredientTables":
        """Build tables from the JSON document shape (see the bundled file)."""

        plurals = {_clean(k): _clean(v) for k, v in (data.get("plurals") or {}).items()}
        invariant = frozenset(_clean(word) for word in data.get("invariant") or [])

        units: Dict[str, Tuple[str, str, float]] = {}
        # Shorthands such as "T" (tbsp) and "t" (tsp) differ only by case.
        exact_units: Dict[str, Tuple[str, str, float]] = {}
        for family, entries in (data.get("units") or {}).items():
            if family not in KNOWN_FAMILIES:
                raise InvalidArgument(f"Unknown unit family '{family}' in ingredient tables")
            for canonical, definition in entries.items():
                factor = float(definition.get("factor", 0))
                if factor <= 0:
                    raise InvalidArgument(f"Unit '{canonical}' needs a positive factor")
                canonical_key = _clean(canonical)
                for alias in [canonical, *definition.get("aliases", [])]:
                    units[_clean(alias)] = (family, canonical_key, factor)
                for alias in definition.get("exact_aliases", []):
                    exact_units[" ".join(alias.split())] = (family, canonical_key, factor)

        tables = cls(plurals=plurals, invariant=invariant)

        # Synonym variants are stored in their singular form so "scallions" and
        # "scallion" hit the same entry.
        synonyms: Dict[str, str] = {}
        for canonical, variants in (data.get("synonyms") or {}).items():
            canonical_key = tables.singularize(_clean(canonical))
            for variant in variants:
                synonyms[tables.singularize(_clean(variant))] = canonical_key
        return cls(
            plurals=plurals,
            invariant=invariant,
            synonyms=synonyms,
            units=units,
            exact_units=exact_units,
        )

    @classmethod
    def load(cls, path: Path | None = None) -> "IngredientTables":
        """Load tables from ``path`` or from the bundled JSON document."""

        if path is not None:
            raw = path.read_text(encoding="utf-8")
            logger.info("Loading ingredient tables from %s", path)
        else:
            raw = (
                resources.files("mise.engine")
                .joinpath("data/ingredient_tables.json")
                .read_text(encoding="utf-8")
            )
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidArgument(f"Ingredient tables are not valid JSON: {exc}") from exc
        return cls.from_mapping(payload)

    def singularize(self, phrase: str) -> str:
        """Singularize the last word of an already-cleaned phrase."""

        if not phrase:
            return phrase
        head, _, word = phrase.rpartition(" ")
        word = self._singular_word(word)
        return f"{head} {word}" if head else word

    def _singular_word(self, word: str) -> str:
        if word in self.invariant:
            return word
        if word in self.plurals:
            return self.plurals[word]
        if len(word) > 4 and word.endswith("ies"):
            return word[:-3] + "y"
        if len(word) > 4 and word.endswith(_SIBILANT_ES):
            return word[:-2]
        if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
            return word[:-1]
        return word


class IngredientNormalizer:
    """Applies :class:`IngredientTables` to ingredient names and units."""

    def __init__(self, tables: IngredientTables):
        self.tables = tables

    def normalize(self, name: str) -> str:
        cleaned = _clean(name or "")
        if not cleaned:
            return ""
        singular = self.tables.singularize(cleaned)
        return self.tables.synonyms.get(singular, singular)

    def normalize_unit(self, unit: str | None) -> UnitFamily:
        raw = " ".join((unit or "").split()).rstrip(".")
        cleaned = raw.lower()
        match = self.tables.exact_units.get(raw) or self.tables.units.get(cleaned)
        if match is None and len(cleaned) > 1 and cleaned.endswith("s"):
            match = self.tables.units.get(cleaned[:-1])
        if match is not None:
            family, canonical, factor = match
            return UnitFamily(name=family, unit=canonical, factor=factor)
        return UnitFamily(name=UNRECOGNIZED, unit=self.tables.singularize(cleaned))


@lru_cache
def get_normalizer() -> IngredientNormalizer:
    """Return the normalizer configured by the current settings (cached)."""

    settings = get_settings()
    return IngredientNormalizer(IngredientTables.load(settings.ingredient_tables_path))


def normalize(name: str) -> str:
    """Canonical comparison key for an ingredient name."""

    return get_normalizer().normalize(name)


def normalize_unit(unit: str | None) -> UnitFamily:
    """Unit family for a raw unit string."""

    return get_normalizer().normalize_unit(unit)


__all__ = [
    "COUNT",
    "UNRECOGNIZED",
    "VOLUME",
    "WEIGHT",
    "IngredientNormalizer",
    "IngredientTables",
    "UnitFamily",
    "get_normalizer",
    "normalize",
    "normalize_unit",
]
