"""
Catalog loader: JSON → validated, immutable measure / funding catalogs.

Responsibilities
----------------
1. Load ``config/catalog/measures.json`` and ``config/catalog/funding.json``
   (or any files with the same shape) into ``MeasureCatalog`` /
   ``FundingCatalog``.
2. Load company profile files (JSON array of profile records) in file order.
3. Reject structurally broken input with ``CatalogError``.

Catalogs are loaded once per planning session and are read-only afterwards.
The live remaining budget of each funding source is NOT stored here; see
``planning/ledger.BudgetLedger``.

Validation rules
----------------
- The file must contain a JSON array.
- Entries whose keys all start with ``"_comment"`` are skipped.
- Duplicate ids are rejected.
- Every record must pass the pydantic model validation; the first ten
  failures are reported together.

Usage
-----
    from decarb_planner.catalog.loader import load_funding_catalog, load_measure_catalog

    measures = load_measure_catalog(Path("config/catalog/measures.json"))
    funding  = load_funding_catalog(Path("config/catalog/funding.json"))
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from decarb_planner.errors import CatalogError, InvalidProfileError
from decarb_planner.models.company import CompanyProfile, profile_from_record
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure

log = logging.getLogger(__name__)

_MAX_REPORTED_ERRORS = 10


# ── Catalog containers ────────────────────────────────────────────────────────


class MeasureCatalog:
    """Immutable, id-indexed collection of measures.

    Iteration order is ascending id so that every consumer sees the same
    order regardless of how the source file was written.
    """

    def __init__(self, measures: Iterable[Measure]) -> None:
        by_id: dict[str, Measure] = {}
        for m in measures:
            if m.id in by_id:
                raise CatalogError(f"Duplicate measure id '{m.id}'.")
            by_id[m.id] = m
        self._by_id = dict(sorted(by_id.items()))

    def __iter__(self) -> Iterator[Measure]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, measure_id: object) -> bool:
        return measure_id in self._by_id

    def get(self, measure_id: str) -> Measure:
        """Return the measure with ``measure_id``; raises ``KeyError`` if unknown."""
        return self._by_id[measure_id]


class FundingCatalog:
    """Immutable, id-indexed collection of funding sources (ascending id)."""

    def __init__(self, sources: Iterable[FundingSource]) -> None:
        by_id: dict[str, FundingSource] = {}
        for s in sources:
            if s.id in by_id:
                raise CatalogError(f"Duplicate funding id '{s.id}'.")
            by_id[s.id] = s
        self._by_id = dict(sorted(by_id.items()))

    def __iter__(self) -> Iterator[FundingSource]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, funding_id: object) -> bool:
        return funding_id in self._by_id

    def get(self, funding_id: str) -> FundingSource:
        """Return the source with ``funding_id``; raises ``KeyError`` if unknown."""
        return self._by_id[funding_id]

    def initial_budgets(self) -> dict[str, float]:
        """Published ``remaining_budget`` per source id, used to seed a ledger."""
        return {s.id: s.remaining_budget for s in self._by_id.values()}


# ── File loading ──────────────────────────────────────────────────────────────


def _read_records(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array of objects, dropping comment-only entries."""
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"JSON parse error: {exc}", path=str(path)) from exc

    if not isinstance(raw, list):
        raise CatalogError("File must contain a JSON array.", path=str(path))

    records: list[dict[str, Any]] = []
    for i, rec in enumerate(raw):
        if not isinstance(rec, dict):
            raise CatalogError(f"Entry at index {i} is not an object.", path=str(path))
        if rec and all(k.startswith("_comment") for k in rec):
            continue
        records.append(rec)
    return records


def _validate_all(records: list[dict[str, Any]], model: type, path: Path) -> list:
    """Validate every record, raising one ``CatalogError`` listing failures."""
    validated = []
    errors: list[tuple[int, str]] = []
    for i, rec in enumerate(records):
        try:
            validated.append(model(**rec))
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first["loc"]) or "record"
            errors.append(
                (i, f"{rec.get('id', '?')}: {where}: {first['msg']} ({exc.error_count()} error(s))")
            )

    if errors:
        lines = [f"  #{idx} {msg}" for idx, msg in errors[:_MAX_REPORTED_ERRORS]]
        if len(errors) > _MAX_REPORTED_ERRORS:
            lines.append(f"  ... and {len(errors) - _MAX_REPORTED_ERRORS} more.")
        raise CatalogError(
            f"{len(errors)} record(s) failed validation:\n" + "\n".join(lines),
            path=str(path),
        )
    return validated


def load_measure_catalog(path: Path) -> MeasureCatalog:
    """Load and validate a measures JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        CatalogError: On malformed JSON, invalid records or duplicate ids.
    """
    log.info("Loading measure catalog from %s", path)
    measures = _validate_all(_read_records(path), Measure, path)
    try:
        catalog = MeasureCatalog(measures)
    except CatalogError as exc:
        raise CatalogError(str(exc), path=str(path)) from exc
    log.info("Loaded %d measures.", len(catalog))
    return catalog


def load_funding_catalog(path: Path) -> FundingCatalog:
    """Load and validate a funding JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        CatalogError: On malformed JSON, invalid records or duplicate ids.
    """
    log.info("Loading funding catalog from %s", path)
    sources = _validate_all(_read_records(path), FundingSource, path)
    try:
        catalog = FundingCatalog(sources)
    except CatalogError as exc:
        raise CatalogError(str(exc), path=str(path)) from exc
    log.info("Loaded %d funding sources.", len(catalog))
    return catalog


def load_profiles(path: Path) -> list[CompanyProfile]:
    """Load company profiles in file order.

    File order is the batch processing order, so it is preserved as-is.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        CatalogError: On malformed JSON or duplicate company ids.
        InvalidProfileError: If a profile lacks a mandatory field.
    """
    log.info("Loading company profiles from %s", path)
    profiles: list[CompanyProfile] = []
    seen: set[str] = set()
    for rec in _read_records(path):
        try:
            profile = profile_from_record(rec)
        except InvalidProfileError:
            log.error("Invalid profile record in %s: %s", path, rec.get("company_id"))
            raise
        if profile.company_id in seen:
            raise CatalogError(
                f"Duplicate company id '{profile.company_id}'.", path=str(path)
            )
        seen.add(profile.company_id)
        profiles.append(profile)
    log.info("Loaded %d company profiles.", len(profiles))
    return profiles
