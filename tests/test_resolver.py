import itertools
import random

import pytest

from sequencer.errors import CycleError, DeploymentConfigError, UnknownDependencyError
from sequencer.resolver import resolve
from sequencer.units import AddressOf, DeploymentUnit


def unit(name, *deps):
    return DeploymentUnit.create(name, depends_on=deps)


def names(units):
    return [u.name for u in units]


def assert_dependencies_first(ordered):
    positions = {u.name: i for i, u in enumerate(ordered)}
    for u in ordered:
        for dependency in u.dependencies:
            assert positions[dependency] < positions[u.name]


def test_two_units(edu_units):
    assert names(resolve(edu_units)) == ["EduChain", "BugBounty"]


def test_dependency_declared_after_dependent(edu_units):
    assert names(resolve(list(reversed(edu_units)))) == ["EduChain", "BugBounty"]


def test_ties_broken_by_input_order():
    units = [unit("C"), unit("B"), unit("A")]
    assert names(resolve(units)) == ["C", "B", "A"]


def test_diamond():
    units = [
        unit("Coordinator", "Application", "Token"),
        unit("Application", "Token"),
        unit("AllowList", "Coordinator"),
        unit("Token"),
        unit("Treasury"),
    ]
    ordered = resolve(units)
    assert names(ordered) == ["Token", "Application", "Coordinator", "AllowList", "Treasury"]
    assert_dependencies_first(ordered)


def test_placeholders_are_dependencies():
    units = [
        DeploymentUnit.create("B", constructor={"a": AddressOf("A")}),
        DeploymentUnit.create("A"),
    ]
    assert names(resolve(units)) == ["A", "B"]


@pytest.mark.parametrize("seed", range(20))
def test_random_dags(seed):
    rng = random.Random(seed)
    size = rng.randint(1, 12)
    # edges only from lower to higher index keep the graph acyclic
    units = [
        unit(f"U{i}", *[f"U{j}" for j in range(i) if rng.random() < 0.3]) for i in range(size)
    ]
    rng.shuffle(units)
    ordered = resolve(units)
    assert sorted(names(ordered)) == sorted(names(units))
    assert_dependencies_first(ordered)
    assert names(resolve(units)) == names(ordered)


def test_resolution_is_deterministic():
    units = [unit("X", "Y"), unit("Z"), unit("Y"), unit("W", "Z", "X")]
    results = {tuple(names(resolve(units))) for _ in range(5)}
    assert results == {("Z", "Y", "X", "W")}


def test_two_unit_cycle():
    with pytest.raises(CycleError) as e:
        resolve([unit("A", "B"), unit("B", "A")])
    assert e.value.cycle_members == ["A", "B"]


def test_self_dependency():
    with pytest.raises(CycleError) as e:
        resolve([unit("Solo"), unit("A", "A")])
    assert e.value.cycle_members == ["A"]


def test_cycle_reported_behind_blocked_unit():
    units = [unit("Root"), unit("Leaf", "C1"), unit("C1", "C2"), unit("C2", "C3"), unit("C3", "C1")]
    with pytest.raises(CycleError) as e:
        resolve(units)
    assert e.value.cycle_members == ["C1", "C2", "C3"]


@pytest.mark.parametrize("permutation", itertools.permutations(range(3)))
def test_cycle_members_always_on_cycle(permutation):
    base = [unit("A", "B"), unit("B", "C"), unit("C", "A")]
    units = [base[i] for i in permutation] + [unit("D", "A")]
    with pytest.raises(CycleError) as e:
        resolve(units)
    assert set(e.value.cycle_members) == {"A", "B", "C"}


def test_unknown_dependency():
    with pytest.raises(UnknownDependencyError) as e:
        resolve([unit("A"), unit("C", "Z")])
    assert e.value.unit_name == "C"
    assert e.value.missing_dependency == "Z"


def test_unknown_dependency_reported_before_cycle():
    with pytest.raises(UnknownDependencyError):
        resolve([unit("A", "B"), unit("B", "A"), unit("C", "Missing")])


def test_duplicate_unit_names():
    with pytest.raises(DeploymentConfigError, match="Duplicate"):
        resolve([unit("A"), unit("A")])


def test_registry_names_collide_after_lower_camel():
    with pytest.raises(DeploymentConfigError, match="registry name 'eduChain'"):
        resolve([unit("EduChain"), unit("eduChain")])


def test_duplicate_explicit_registry_names():
    units = [
        DeploymentUnit.create("PrimaryToken", contract="Token", registry_name="token"),
        DeploymentUnit.create("BackupToken", contract="Token", registry_name="token"),
    ]
    with pytest.raises(DeploymentConfigError, match="BackupToken and PrimaryToken"):
        resolve(units)


def test_reserved_registry_name():
    with pytest.raises(DeploymentConfigError, match="reserved"):
        resolve([DeploymentUnit.create("Errors", registry_name="_error")])


def test_empty():
    assert resolve([]) == []
