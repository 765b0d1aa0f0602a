"""
Dependency ordering for Feature Swarm.

Features declare the ids of the features they depend on. Before the feature
loop runs, features are put in an order where every feature comes after the
in-set features it depends on.

Example:
    f-auth:  no deps
    f-api:   deps on f-auth
    f-ui:    deps on f-api, f-billing (f-billing not in the spec)

    order -> [f-auth, f-api, f-ui]; the unknown f-billing is ignored.

Cycles are not rejected. The depth-first walk marks a feature visited only
after its dependencies are emitted, so a cycle is cut wherever the walk
re-enters it and the resulting order violates that cycle's constraint.
Use find_cycle() to detect this before running.
"""

from __future__ import annotations

from typing import Iterator, Optional, Sequence

from feature_swarm.models import Feature


class DependencyScheduler:
    """
    Orders features so dependencies run first.

    Total function: never raises, for any input.
    """

    def __init__(self, features: Sequence[Feature]) -> None:
        self._features = list(features)
        self._by_id: dict[str, Feature] = {f.id: f for f in self._features}

    def order(self) -> list[Feature]:
        """
        Return features in dependency order.

        Depth-first over the input list in input order; independent features
        keep their input order. Iterative, so long chains are fine.
        """
        ordered: list[Feature] = []
        visited: set[str] = set()
        # Features on the current path; re-entering one is skipped.
        in_progress: set[str] = set()

        for root_id in (f.id for f in self._features):
            if root_id in visited:
                continue
            root = self._by_id[root_id]
            in_progress.add(root_id)
            stack: list[tuple[Feature, Iterator[str]]] = [(root, iter(root.dependencies))]
            while stack:
                feature, deps = stack[-1]
                for dep_id in deps:
                    dep = self._by_id.get(dep_id)
                    if dep is None or dep_id in visited or dep_id in in_progress:
                        continue
                    in_progress.add(dep_id)
                    stack.append((dep, iter(dep.dependencies)))
                    break
                else:
                    stack.pop()
                    in_progress.discard(feature.id)
                    visited.add(feature.id)
                    ordered.append(feature)

        return ordered

    def find_cycle(self) -> Optional[list[str]]:
        """
        Find one dependency cycle among in-set features.

        Returns:
            The cycle as a list of feature ids (first id repeated at the end),
            or None when the dependency graph is acyclic.
        """
        white, grey, black = 0, 1, 2
        color: dict[str, int] = {fid: white for fid in self._by_id}

        for feature in self._features:
            if color[feature.id] != white:
                continue
            color[feature.id] = grey
            path: list[str] = [feature.id]
            pending: list[Iterator[str]] = [iter(feature.dependencies)]
            while pending:
                for dep in pending[-1]:
                    if dep not in self._by_id:
                        continue
                    if color[dep] == grey:
                        start = path.index(dep)
                        return path[start:] + [dep]
                    if color[dep] == white:
                        color[dep] = grey
                        path.append(dep)
                        pending.append(iter(self._by_id[dep].dependencies))
                        break
                else:
                    pending.pop()
                    color[path.pop()] = black
        return None

    def unknown_dependencies(self) -> dict[str, list[str]]:
        """Map feature id -> dependency ids that are not in the feature set."""
        missing: dict[str, list[str]] = {}
        for feature in self._features:
            unknown = [d for d in feature.dependencies if d not in self._by_id]
            if unknown:
                missing[feature.id] = unknown
        return missing


def order_features(features: Sequence[Feature]) -> list[Feature]:
    """Convenience wrapper around DependencyScheduler.order()."""
    return DependencyScheduler(features).order()


def find_cycle(features: Sequence[Feature]) -> Optional[list[str]]:
    """Convenience wrapper around DependencyScheduler.find_cycle()."""
    return DependencyScheduler(features).find_cycle()
