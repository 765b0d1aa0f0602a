"""Feature ordering for Feature Swarm."""

from feature_swarm.planning.dependency_graph import (
    DependencyScheduler,
    find_cycle,
    order_features,
)

__all__ = ["DependencyScheduler", "find_cycle", "order_features"]
