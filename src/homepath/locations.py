"""Location data: model, static dataset, providers and session overrides.

All monetary fields are stored as Decimal to avoid float imprecision.
Cost-of-living figures exclude housing; rent is held in its own table.
Each location carries two cost-of-living variants: the renting figure used
before a home is bought and the owning figure used after.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Optional, Protocol

from .config import ZERO

RENT_3BR_MULTIPLIER = Decimal("1.3")

COMPOSITION_KEYS: tuple[str, ...] = (
    "one_person",
    "single_parent_1",
    "single_parent_2",
    "single_parent_3",
    "one_worker_one_adult",
    "two_earners",
    "family_3_one_worker",
    "family_3_two_workers",
    "family_4_one_worker",
    "family_4_two_workers",
    "family_5_one_worker",
    "family_5_two_workers",
)

HOME_TIERS: tuple[str, ...] = ("small", "median", "large", "very_large")


class LocationDataError(LookupError):
    """Base class for lookups the location data cannot answer."""


class LocationNotFoundError(LocationDataError):
    """Raised when a location name is not known to the provider."""


class OccupationNotFoundError(LocationDataError):
    """Raised when no salary figure matches an occupation."""


class MissingCostOfLivingError(LocationDataError):
    """Raised when a location has no cost-of-living figure for a household."""


def occupation_key(occupation: str) -> str:
    """Canonical salary-table key: lower case, words joined by underscores."""
    return "_".join(re.findall(r"[a-z0-9]+", occupation.lower().replace("&", " and ")))


@dataclass(frozen=True)
class HousingMarket:
    median_home_value: Decimal
    small_home_value: Decimal
    large_home_value: Decimal
    very_large_home_value: Decimal
    mortgage_rate: Decimal
    down_payment_percent: Decimal

    def __post_init__(self) -> None:
        for tier in HOME_TIERS:
            if self.home_value(tier) < ZERO:
                raise ValueError(f"{tier} home value must be >= 0")
        if not ZERO < self.mortgage_rate < 1:
            raise ValueError(f"mortgage_rate must be in (0, 1), got {self.mortgage_rate}")
        if not ZERO < self.down_payment_percent < 1:
            raise ValueError(
                f"down_payment_percent must be in (0, 1), got {self.down_payment_percent}"
            )

    def home_value(self, tier: str) -> Decimal:
        if tier not in HOME_TIERS:
            raise ValueError(f"Unknown home tier '{tier}'. Valid tiers: {', '.join(HOME_TIERS)}")
        return getattr(self, f"{tier}_home_value")


@dataclass(frozen=True)
class LocationData:
    name: str
    salaries: Mapping[str, Decimal]
    overall_average_salary: Decimal
    housing: HousingMarket
    cost_of_living: Mapping[str, Decimal]
    rent: Mapping[int, Decimal]
    owner_cost_of_living: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        tables = (
            ("salaries", self.salaries),
            ("cost_of_living", self.cost_of_living),
            ("owner_cost_of_living", self.owner_cost_of_living),
            ("rent", self.rent),
        )
        for label, table in tables:
            for key, value in table.items():
                if value < ZERO:
                    raise ValueError(f"{self.name}: {label}[{key}] must be >= 0, got {value}")
        if self.overall_average_salary < ZERO:
            raise ValueError(f"{self.name}: overall_average_salary must be >= 0")

    def salary_for(self, occupation: str, override: Optional[Decimal] = None) -> Decimal:
        """Return the annual salary for *occupation*.

        A positive manual override always wins. Otherwise the exact salary-table
        key is tried first, then a keyword match against the table keys.
        Raises OccupationNotFoundError when nothing matches.
        """
        if override is not None and override > ZERO:
            return override
        key = occupation_key(occupation)
        if key in self.salaries:
            return self.salaries[key]
        words = [w for w in key.split("_") if len(w) > 3]
        for candidate in sorted(self.salaries):
            if any(w in candidate for w in words):
                return self.salaries[candidate]
        raise OccupationNotFoundError(
            f"No salary data for occupation '{occupation}' in {self.name}."
        )

    def cost_of_living_for(self, composition: str, *, owning: bool = False) -> Decimal:
        """Annual non-housing cost of living for a household composition key.

        The owning variant falls back to the renting figure when absent.
        """
        if owning and composition in self.owner_cost_of_living:
            return self.owner_cost_of_living[composition]
        if composition not in self.cost_of_living:
            raise MissingCostOfLivingError(
                f"No cost-of-living figure for household '{composition}' in {self.name}."
            )
        return self.cost_of_living[composition]

    def rent_for(self, bedrooms: int) -> Decimal:
        if bedrooms in self.rent:
            return self.rent[bedrooms]
        if bedrooms == 3 and 2 in self.rent:
            return self.rent[2] * RENT_3BR_MULTIPLIER
        raise MissingCostOfLivingError(f"No {bedrooms}-bedroom rent figure in {self.name}.")


# ── Static dataset ────────────────────────────────────────────────────────────

# National reference figures; each location scales them by its own factors.
_BASE_SALARIES: dict[str, Decimal] = {
    "management": Decimal("137000"),
    "business_and_financial": Decimal("86000"),
    "computer_and_mathematical": Decimal("108000"),
    "architecture_and_engineering": Decimal("97000"),
    "life_physical_and_social_science": Decimal("84000"),
    "legal": Decimal("125000"),
    "education": Decimal("63000"),
    "healthcare_practitioners": Decimal("98000"),
    "healthcare_support": Decimal("38000"),
    "sales": Decimal("50000"),
    "office_and_administrative_support": Decimal("46000"),
    "construction_and_extraction": Decimal("58000"),
    "food_preparation_and_serving": Decimal("33000"),
}

_BASE_COST_OF_LIVING: dict[str, Decimal] = {
    "one_person": Decimal("32000"),
    "single_parent_1": Decimal("55000"),
    "single_parent_2": Decimal("72000"),
    "single_parent_3": Decimal("88000"),
    "one_worker_one_adult": Decimal("52000"),
    "two_earners": Decimal("50000"),
    "family_3_one_worker": Decimal("68000"),
    "family_3_two_workers": Decimal("80000"),
    "family_4_one_worker": Decimal("80000"),
    "family_4_two_workers": Decimal("95000"),
    "family_5_one_worker": Decimal("92000"),
    "family_5_two_workers": Decimal("108000"),
}

_BASE_RENT: dict[int, Decimal] = {
    1: Decimal("16800"),
    2: Decimal("20400"),
    3: Decimal("26400"),
}


def _scaled(table: Mapping, factor: str) -> dict:
    f = Decimal(factor)
    return {key: (value * f).quantize(Decimal("1")) for key, value in table.items()}


def _static_location(
    name: str,
    *,
    salary_factor: str,
    col_factor: str,
    owner_factor: str,
    rent_factor: str,
    median_home_value: str,
    mortgage_rate: str,
    down_payment_percent: str = "0.20",
) -> LocationData:
    salaries = _scaled(_BASE_SALARIES, salary_factor)
    cost_of_living = _scaled(_BASE_COST_OF_LIVING, col_factor)
    median = Decimal(median_home_value)
    return LocationData(
        name=name,
        salaries=salaries,
        overall_average_salary=(sum(salaries.values(), ZERO) / len(salaries)).quantize(Decimal("1")),
        housing=HousingMarket(
            median_home_value=median,
            small_home_value=(median * Decimal("0.75")).quantize(Decimal("1")),
            large_home_value=(median * Decimal("1.35")).quantize(Decimal("1")),
            very_large_home_value=(median * Decimal("1.75")).quantize(Decimal("1")),
            mortgage_rate=Decimal(mortgage_rate),
            down_payment_percent=Decimal(down_payment_percent),
        ),
        cost_of_living=cost_of_living,
        owner_cost_of_living=_scaled(cost_of_living, owner_factor),
        rent=_scaled(_BASE_RENT, rent_factor),
    )


_LOCATIONS: dict[str, LocationData] = {
    loc.name.lower(): loc
    for loc in (
        _static_location(
            "Florida", salary_factor="0.92", col_factor="0.98", owner_factor="1.06",
            rent_factor="1.12", median_home_value="410000", mortgage_rate="0.0679",
        ),
        _static_location(
            "Utah", salary_factor="0.95", col_factor="0.96", owner_factor="1.04",
            rent_factor="1.05", median_home_value="520000", mortgage_rate="0.0672",
        ),
        _static_location(
            "Texas", salary_factor="0.97", col_factor="0.94", owner_factor="1.08",
            rent_factor="0.98", median_home_value="340000", mortgage_rate="0.0681",
        ),
        _static_location(
            "California", salary_factor="1.18", col_factor="1.22", owner_factor="1.05",
            rent_factor="1.65", median_home_value="790000", mortgage_rate="0.0665",
        ),
        _static_location(
            "New York", salary_factor="1.15", col_factor="1.20", owner_factor="1.07",
            rent_factor="1.55", median_home_value="480000", mortgage_rate="0.0688",
        ),
        _static_location(
            "Ohio", salary_factor="0.90", col_factor="0.88", owner_factor="1.05",
            rent_factor="0.78", median_home_value="230000", mortgage_rate="0.0685",
        ),
    )
}

SUPPORTED_LOCATIONS = frozenset(loc.name for loc in _LOCATIONS.values())


# ── Providers ─────────────────────────────────────────────────────────────────

class LocationProvider(Protocol):
    def lookup(self, name: str) -> Optional[LocationData]: ...


class StaticLocationProvider:
    """Read-only provider over an in-memory table (the bundled dataset by default)."""

    def __init__(self, locations: Optional[Iterable[LocationData]] = None) -> None:
        if locations is None:
            self._locations = dict(_LOCATIONS)
        else:
            self._locations = {loc.name.lower(): loc for loc in locations}

    def lookup(self, name: str) -> Optional[LocationData]:
        return self._locations.get(name.strip().lower())

    def names(self) -> list[str]:
        return sorted(loc.name for loc in self._locations.values())


def get_location(name: str, provider: Optional[LocationProvider] = None) -> LocationData:
    """Return the location *name* from *provider* (the bundled dataset by default).

    Raises LocationNotFoundError for unknown names.
    """
    source = provider if provider is not None else StaticLocationProvider()
    location = source.lookup(name)
    if location is None:
        raise LocationNotFoundError(f"Unknown location '{name}'.")
    return location


class SessionLocationStore:
    """Mutable, session-scoped overlay on top of a provider.

    Only housing-market fields can be overridden; every other field is read
    through from the underlying provider.
    """

    def __init__(self, provider: Optional[LocationProvider] = None) -> None:
        self._provider = provider if provider is not None else StaticLocationProvider()
        # Overrides stored as {location_key: {housing_field: value}}
        self._overrides: dict[str, dict[str, Decimal]] = {}
        self._manual_rate_set: set[str] = set()

    def lookup(self, name: str) -> Optional[LocationData]:
        location = self._provider.lookup(name)
        if location is None:
            return None
        overrides = self._overrides.get(name.strip().lower())
        if not overrides:
            return location
        return replace(location, housing=replace(location.housing, **overrides))

    def set_mortgage_rate(self, name: str, value: Decimal, *, manual: bool) -> None:
        key = self._require(name)
        if not ZERO < value < 1:
            raise ValueError(f"Mortgage rate must be in (0, 1), got {value}.")
        self._overrides.setdefault(key, {})["mortgage_rate"] = value
        if manual:
            self._manual_rate_set.add(key)
        else:
            self._manual_rate_set.discard(key)

    def set_down_payment_percent(self, name: str, value: Decimal) -> None:
        key = self._require(name)
        if not ZERO < value < 1:
            raise ValueError(f"Down payment percent must be in (0, 1), got {value}.")
        self._overrides.setdefault(key, {})["down_payment_percent"] = value

    def is_rate_manually_set(self, name: str) -> bool:
        return name.strip().lower() in self._manual_rate_set

    def _require(self, name: str) -> str:
        if self._provider.lookup(name) is None:
            raise LocationNotFoundError(f"Unknown location '{name}'.")
        return name.strip().lower()


# ── JSON datasets ─────────────────────────────────────────────────────────────

def _money_table(raw: Mapping) -> dict[str, Decimal]:
    return {str(k): Decimal(str(v)) for k, v in raw.items()}


def location_from_dict(data: Mapping) -> LocationData:
    """Build a LocationData from a JSON-style mapping.

    Raises ValueError when a required field is missing or malformed.
    """
    try:
        housing = data["housing"]
        return LocationData(
            name=str(data["name"]),
            salaries={occupation_key(k): v for k, v in _money_table(data["salaries"]).items()},
            overall_average_salary=Decimal(str(data.get("overall_average_salary", 0))),
            housing=HousingMarket(
                median_home_value=Decimal(str(housing["median_home_value"])),
                small_home_value=Decimal(str(housing["small_home_value"])),
                large_home_value=Decimal(str(housing["large_home_value"])),
                very_large_home_value=Decimal(str(housing["very_large_home_value"])),
                mortgage_rate=Decimal(str(housing["mortgage_rate"])),
                down_payment_percent=Decimal(str(housing["down_payment_percent"])),
            ),
            cost_of_living=_money_table(data["cost_of_living"]),
            owner_cost_of_living=_money_table(data.get("owner_cost_of_living", {})),
            rent={int(k): v for k, v in _money_table(data["rent"]).items()},
        )
    except (KeyError, TypeError, ArithmeticError) as exc:
        raise ValueError(f"Malformed location record: {exc!r}") from exc


def load_locations(path: str | Path) -> StaticLocationProvider:
    """Load a JSON dataset (a list of location records) into a provider."""
    with open(path, encoding="utf-8") as fh:
        records = json.load(fh)
    if isinstance(records, Mapping):
        records = records.get("locations", [])
    return StaticLocationProvider(location_from_dict(r) for r in records)
