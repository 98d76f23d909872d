"""
Resource ledger, affordability checks and resource consumption.

Resources are never stored; they are derived from the dice. Only dice that are
not yet consumed count. Gold is a wildcard: every shortage of one resource can
be covered by a pair of gold dice.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import replace

from dice_catan.engine.definitions import (
    GOLD_PER_SUBSTITUTE,
    Resource,
    parse_resource,
)
from dice_catan.engine.state import Die


def empty_resources() -> dict[Resource, int]:
    return {r: 0 for r in Resource}


def available_resources(dice: Iterable[Die]) -> dict[Resource, int]:
    """Count resources over unconsumed dice. Locked state does not matter."""
    resources = empty_resources()
    for die in dice:
        if not die.consumed:
            resources[die.resource] += 1
    return resources


def count_requirement(requirement: Iterable[Resource | str]) -> dict[Resource, int]:
    """
    Collapse a requirement list into {resource: count}, keeping first-appearance order.
    Raises ValueError for unknown resources or a directly required gold.
    """
    needed: dict[Resource, int] = {}
    for raw in requirement:
        resource = parse_resource(raw)
        if resource == Resource.GOLD:
            raise ValueError("Gold cannot be required directly; it only substitutes")
        needed[resource] = needed.get(resource, 0) + 1
    return needed


def _shortages(needed: Mapping[Resource, int], available: Mapping[Resource, int]) -> dict[Resource, int]:
    return {
        resource: max(0, count - available.get(resource, 0))
        for resource, count in needed.items()
    }


def total_shortage(requirement: Iterable[Resource | str], available: Mapping[Resource, int]) -> int:
    """Units that exact resources cannot cover."""
    return sum(_shortages(count_requirement(requirement), available).values())


def can_build(requirement: Iterable[Resource | str], available: Mapping[Resource, int]) -> bool:
    """
    True if the requirement can be paid from available, using gold pairs for shortages.
    An empty requirement is always affordable.

    Example: can_build([LUMBER, BRICK], {LUMBER: 1, GOLD: 2}) -> True
    """
    gold = available.get(Resource.GOLD, 0)
    return gold >= total_shortage(requirement, available) * GOLD_PER_SUBSTITUTE


def get_missing_resources(
    requirement: Iterable[Resource | str],
    available: Mapping[Resource, int],
) -> list[Resource]:
    """
    Resources still short after spending gold pairs.
    Gold pairs are handed out greedily in requirement order; each remaining
    missing unit is one entry, so a two-unit shortage appears twice.
    """
    needed = count_requirement(requirement)
    gold_left = available.get(Resource.GOLD, 0)
    missing: list[Resource] = []
    for resource, shortage in _shortages(needed, available).items():
        if shortage <= 0:
            continue
        covered = min(shortage, gold_left // GOLD_PER_SUBSTITUTE)
        gold_left -= covered * GOLD_PER_SUBSTITUTE
        missing.extend([resource] * (shortage - covered))
    return missing


def select_dice(dice: list[Die], requirement: Iterable[Resource | str]) -> tuple[list[int], list[int]]:
    """
    Pick the dice a build would spend, returning (exact_indices, gold_indices).

    Pass 1: for each required unit take the first unconsumed die showing that
    resource, in index order. Pass 2: take two unconsumed gold dice per unit
    pass 1 could not cover. Locked dice are eligible; consumed dice never are.
    Affordability is not checked here; when gold runs out the selection is short.
    """
    needed = count_requirement(requirement)
    taken: set[int] = set()
    exact: list[int] = []
    shortage = 0

    for resource, count in needed.items():
        found = 0
        for i, die in enumerate(dice):
            if found >= count:
                break
            if i in taken or die.consumed or die.resource != resource:
                continue
            taken.add(i)
            exact.append(i)
            found += 1
        shortage += count - found

    gold: list[int] = []
    gold_needed = shortage * GOLD_PER_SUBSTITUTE
    for i, die in enumerate(dice):
        if len(gold) >= gold_needed:
            break
        if i in taken or die.consumed or die.resource != Resource.GOLD:
            continue
        taken.add(i)
        gold.append(i)

    return exact, gold


def consume_resources(dice: list[Die], requirement: Iterable[Resource | str]) -> list[Die]:
    """Return new dice with the selected ones marked consumed. Faces never change."""
    exact, gold = select_dice(dice, requirement)
    spent = set(exact) | set(gold)
    return [replace(die, consumed=True) if i in spent else replace(die) for i, die in enumerate(dice)]


def format_resources(resources: Mapping[Resource, int]) -> str:
    """'lumber: 1, gold: 2' style summary, skipping zero counts."""
    counts = Counter({parse_resource(k): v for k, v in resources.items() if v})
    return ", ".join(f"{r.value}: {counts[r]}" for r in Resource if counts[r]) or "none"
