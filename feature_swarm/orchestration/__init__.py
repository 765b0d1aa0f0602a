"""Feature pipeline orchestration: join-all fan-out and the per-feature gate pipeline."""

from feature_swarm.orchestration.concurrency import join_all
from feature_swarm.orchestration.gate_pipeline import FeatureProcessor, PipelineSettings

__all__ = ["FeatureProcessor", "PipelineSettings", "join_all"]
