"""Tests for dependency ordering of features."""

import itertools

import pytest

from feature_swarm.planning import DependencyScheduler, find_cycle, order_features
from tests.fakes import make_feature


def _positions(ordered):
    return {f.id: i for i, f in enumerate(ordered)}


class TestOrder:
    """Tests for DependencyScheduler.order()."""

    def test_empty_input(self):
        assert order_features([]) == []

    def test_independent_features_keep_input_order(self):
        features = [make_feature("c"), make_feature("a"), make_feature("b")]
        assert [f.id for f in order_features(features)] == ["c", "a", "b"]

    def test_dependency_listed_after_dependent_moves_first(self):
        features = [make_feature("api", ["db"]), make_feature("db")]
        assert [f.id for f in order_features(features)] == ["db", "api"]

    def test_diamond(self):
        features = [
            make_feature("d", ["b", "c"]),
            make_feature("b", ["a"]),
            make_feature("c", ["a"]),
            make_feature("a"),
        ]
        ids = [f.id for f in order_features(features)]
        assert ids == ["a", "b", "c", "d"]

    @pytest.mark.parametrize("perm", list(itertools.permutations(range(5))))
    def test_every_feature_after_its_dependencies(self, perm):
        """Any input order of an acyclic graph yields a valid topological order."""
        base = [
            make_feature("f1"),
            make_feature("f2", ["f1"]),
            make_feature("f3", ["f1", "f2"]),
            make_feature("f4"),
            make_feature("f5", ["f3", "f4"]),
        ]
        features = [base[i] for i in perm]
        ordered = order_features(features)
        pos = _positions(ordered)

        assert sorted(pos) == ["f1", "f2", "f3", "f4", "f5"]
        for feature in features:
            for dep in feature.dependencies:
                assert pos[dep] < pos[feature.id]

    def test_unknown_dependency_is_ignored(self):
        features = [make_feature("a", ["ghost"]), make_feature("b", ["a", "phantom"])]
        assert [f.id for f in order_features(features)] == ["a", "b"]

    def test_each_feature_appears_once(self):
        features = [make_feature("a"), make_feature("b", ["a"]), make_feature("c", ["a", "b"])]
        ids = [f.id for f in order_features(features)]
        assert len(ids) == len(set(ids)) == 3

    def test_cycle_terminates_and_includes_all(self):
        features = [make_feature("a", ["b"]), make_feature("b", ["a"]), make_feature("c")]
        ids = [f.id for f in order_features(features)]
        assert sorted(ids) == ["a", "b", "c"]

    def test_self_dependency_terminates(self):
        ids = [f.id for f in order_features([make_feature("a", ["a"])])]
        assert ids == ["a"]

    def test_long_reversed_chain(self):
        """Each feature depends on the one after it in the input list."""
        count = 5000
        features = [
            make_feature(f"f{i}", [f"f{i + 1}"] if i + 1 < count else [], criteria=0)
            for i in range(count)
        ]
        ids = [f.id for f in DependencyScheduler(features).order()]
        assert ids == [f"f{i}" for i in reversed(range(count))]

    def test_long_cycle_terminates(self):
        count = 5000
        features = [
            make_feature(f"f{i}", [f"f{(i + 1) % count}"], criteria=0) for i in range(count)
        ]
        assert len(DependencyScheduler(features).order()) == count


class TestFindCycle:
    """Tests for cycle detection."""

    def test_acyclic_returns_none(self):
        features = [make_feature("a"), make_feature("b", ["a"])]
        assert find_cycle(features) is None

    def test_two_node_cycle(self):
        cycle = find_cycle([make_feature("a", ["b"]), make_feature("b", ["a"])])
        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b"}

    def test_cycle_behind_unknown_dependency(self):
        features = [
            make_feature("x", ["missing"]),
            make_feature("a", ["c"]),
            make_feature("b", ["a"]),
            make_feature("c", ["b"]),
        ]
        cycle = find_cycle(features)
        assert cycle is not None
        assert set(cycle) == {"a", "b", "c"}

    def test_long_chain_without_cycle(self):
        count = 5000
        features = [
            make_feature(f"f{i}", [f"f{i + 1}"] if i + 1 < count else [], criteria=0)
            for i in range(count)
        ]
        assert find_cycle(features) is None

    def test_long_cycle_reported(self):
        count = 5000
        features = [
            make_feature(f"f{i}", [f"f{(i + 1) % count}"], criteria=0) for i in range(count)
        ]
        cycle = find_cycle(features)
        assert cycle is not None
        assert len(cycle) == count + 1
        assert cycle[0] == cycle[-1] == "f0"


class TestUnknownDependencies:
    def test_reports_missing_ids_per_feature(self):
        scheduler = DependencyScheduler([
            make_feature("a", ["ghost"]),
            make_feature("b", ["a"]),
        ])
        assert scheduler.unknown_dependencies() == {"a": ["ghost"]}
