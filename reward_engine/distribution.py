"""
Reward Engine - Distribution Partitioner.

============================================================
RESPONSIBILITY
============================================================
Splits an amount into named, weighted sub-amounts.

- Weight tables are ordered (name, weight) DATA loaded from config
- Weights are exact Decimals and must sum to exactly 1
- The last entry takes the remainder, so parts always add up
  to the total

The split has been reconfigured several times over the system's
lifetime; changing it must never touch partition().

============================================================
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Union

from reward_engine.exceptions import ConfigurationError


WeightInput = Union[
    Mapping[str, Any],
    Iterable[tuple[str, Any]],
    Iterable[Mapping[str, Any]],
]


def _to_weight(name: str, raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise ConfigurationError(f"Weight for '{name}' must be a number", config_key=name)
    try:
        # str() keeps 0.85 as Decimal('0.85') rather than its binary expansion
        weight = Decimal(str(raw))
    except InvalidOperation as e:
        raise ConfigurationError(
            f"Weight for '{name}' is not a number: {raw!r}",
            config_key=name,
            original_error=e,
        )
    if not weight.is_finite() or weight < 0:
        raise ConfigurationError(f"Weight for '{name}' must be >= 0, got {raw!r}", config_key=name)
    return weight


@dataclass(frozen=True)
class DistributionWeights:
    """Ordered named fractions summing to exactly 1."""
    entries: tuple[tuple[str, Decimal], ...]

    def __post_init__(self) -> None:
        if not self.entries:
            raise ConfigurationError("Distribution weights must not be empty")

        names = [name for name, _ in self.entries]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate allocation names in {names}")
        if any(not name for name in names):
            raise ConfigurationError("Allocation names must be non-empty")

        total = sum((weight for _, weight in self.entries), Decimal(0))
        if total != 1:
            raise ConfigurationError(
                f"Distribution weights must sum to 1, got {total} for {names}"
            )

    @classmethod
    def from_config(cls, data: WeightInput) -> "DistributionWeights":
        """
        Build from a mapping, (name, weight) pairs, or
        ``[{"name": ..., "weight": ...}]`` items.
        """
        if isinstance(data, Mapping):
            items = list(data.items())
        else:
            items = []
            for item in data:
                if isinstance(item, Mapping):
                    if "name" not in item or "weight" not in item:
                        raise ConfigurationError(f"Weight entry needs name and weight: {item!r}")
                    items.append((item["name"], item["weight"]))
                else:
                    name, weight = item
                    items.append((name, weight))

        return cls(tuple((str(name), _to_weight(str(name), weight)) for name, weight in items))

    @classmethod
    def parse(cls, text: str) -> "DistributionWeights":
        """Parse ``"burn=0.85,liquidity=0.15"`` (environment variable form)."""
        pairs = []
        for part in text.split(","):
            part = part.strip()
            if not part:
                continue
            if "=" not in part:
                raise ConfigurationError(f"Expected name=weight, got {part!r}")
            name, weight = part.split("=", 1)
            pairs.append((name.strip(), weight.strip()))
        return cls.from_config(pairs)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.entries]

    def weight(self, name: str) -> Decimal:
        for entry_name, weight in self.entries:
            if entry_name == name:
                return weight
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(entry_name == name for entry_name, _ in self.entries)

    def to_dict(self) -> dict[str, str]:
        return {name: str(weight) for name, weight in self.entries}


def _remainder_index(weights: DistributionWeights) -> int:
    """Index of the largest weight (first on ties); it absorbs rounding."""
    return max(range(len(weights.entries)), key=lambda index: weights.entries[index][1])


def partition(total: float, weights: DistributionWeights) -> dict[str, float]:
    """
    Split total into ``total * weight_i`` per name, in table order.

    The largest-weight entry receives the remainder so the parts sum
    to total; a zero-weight entry always gets exactly zero.
    """
    remainder_index = _remainder_index(weights)
    amounts = {name: total * float(weight) for name, weight in weights.entries}

    remainder_name = weights.entries[remainder_index][0]
    allocated = sum(amount for name, amount in amounts.items() if name != remainder_name)
    amounts[remainder_name] = total - allocated
    return amounts


def partition_units(total: int, weights: DistributionWeights) -> dict[str, int]:
    """
    Integer split for smallest-unit amounts, truncating each share;
    the largest-weight entry receives the remainder.
    """
    remainder_index = _remainder_index(weights)
    amounts: dict[str, int] = {}
    for name, weight in weights.entries:
        numerator, denominator = weight.as_integer_ratio()
        amounts[name] = total * numerator // denominator

    remainder_name = weights.entries[remainder_index][0]
    allocated = sum(amount for name, amount in amounts.items() if name != remainder_name)
    amounts[remainder_name] = total - allocated
    return amounts
