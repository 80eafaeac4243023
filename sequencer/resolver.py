from collections import OrderedDict
from typing import Dict, List, Sequence

from sequencer.constants import ERROR_KEY
from sequencer.errors import CycleError, DeploymentConfigError, UnknownDependencyError
from sequencer.units import DeploymentUnit


def _index_units(units: Sequence[DeploymentUnit]) -> Dict[str, DeploymentUnit]:
    indexed = OrderedDict()
    registry_names = dict()
    for unit in units:
        if unit.name in indexed:
            raise DeploymentConfigError(f"Duplicate deployment unit '{unit.name}'.")
        if unit.registry_name == ERROR_KEY:
            raise DeploymentConfigError(
                f"{unit.name} cannot use the reserved registry name '{ERROR_KEY}'."
            )
        if unit.registry_name in registry_names:
            raise DeploymentConfigError(
                f"{unit.name} and {registry_names[unit.registry_name]} share the "
                f"registry name '{unit.registry_name}'."
            )
        indexed[unit.name] = unit
        registry_names[unit.registry_name] = unit.name
    return indexed


def _check_dependencies(indexed: Dict[str, DeploymentUnit]) -> None:
    for unit in indexed.values():
        for dependency in unit.dependencies:
            if dependency not in indexed:
                raise UnknownDependencyError(unit_name=unit.name, missing_dependency=dependency)


def _find_cycle(remaining: Dict[str, DeploymentUnit], positions: Dict[str, int]) -> List[str]:
    """
    Walks dependency edges among the blocked units until a unit repeats.
    Every blocked unit has at least one blocked dependency, so the walk always closes a loop.
    """
    path = list()
    current = next(iter(remaining))
    while current not in path:
        path.append(current)
        unit = remaining[current]
        current = next(d for d in unit.dependencies if d in remaining)
    cycle = path[path.index(current) :]
    return sorted(cycle, key=positions.get)


def resolve(units: Sequence[DeploymentUnit]) -> List[DeploymentUnit]:
    """
    Returns the units in deployment order: every unit appears after all of its dependencies.
    When several units are ready at once the earliest declared one goes first, so the same
    input always yields the same order. Raises on unknown dependencies and cycles without
    returning a partial order.
    """
    indexed = _index_units(units)
    _check_dependencies(indexed)

    positions = {name: position for position, name in enumerate(indexed)}
    remaining = OrderedDict(indexed)
    placed = set()
    ordered = list()
    while remaining:
        ready = next(
            (u for u in remaining.values() if all(d in placed for d in u.dependencies)),
            None,
        )
        if ready is None:
            raise CycleError(cycle_members=_find_cycle(remaining, positions))
        ordered.append(ready)
        placed.add(ready.name)
        del remaining[ready.name]

    return ordered
