"""
Top-level entry point for swarm runs.

SwarmOrchestrator turns a spec file plus configuration into LifecycleOptions
and awaits the lifecycle. Thresholds resolve in this order: explicit
argument, the spec's ``quality`` section, then config.yaml.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from feature_swarm.config import validate_lifecycle
from feature_swarm.lifecycle import LifecycleContext, LifecycleOptions, run_swarm_lifecycle
from feature_swarm.llm_clients import ClaudeCliProvider
from feature_swarm.logger import SwarmLogger, get_logger
from feature_swarm.spec_loader import load_spec

if TYPE_CHECKING:
    from feature_swarm.config import SwarmConfig
    from feature_swarm.lifecycle import ProgressCallback
    from feature_swarm.llm_clients import ChatProvider
    from feature_swarm.models import SwarmSpec


class SwarmOrchestrator:
    """
    Orchestrates a full swarm run for one project.

    One run per project directory at a time; the task board, event log and
    knowledge base under ``.swarm/`` assume a single writer.
    """

    def __init__(
        self,
        config: SwarmConfig,
        provider: Optional[ChatProvider] = None,
        logger: Optional[SwarmLogger] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: SwarmConfig with paths and thresholds.
            provider: Agent-calling capability. Defaults to the Claude CLI.
            logger: Optional logger. Defaults to a JSONL logger under .swarm/logs.
        """
        self.config = config
        self._provider = provider
        self._logger = logger

    @property
    def provider(self) -> ChatProvider:
        if self._provider is None:
            self._provider = ClaudeCliProvider(
                self.config.claude,
                logger=self._logger,
                working_dir=self.config.repo_root,
            )
        return self._provider

    def build_options(
        self,
        spec: SwarmSpec,
        output_path: Optional[Union[str, Path]] = None,
        min_score: Optional[int] = None,
        max_iterations: Optional[int] = None,
        no_questions: Optional[bool] = None,
        on_progress: Optional[ProgressCallback] = None,
        logger: Optional[SwarmLogger] = None,
    ) -> LifecycleOptions:
        """
        Resolve run options for a spec.

        Raises:
            ConfigError: If the resolved thresholds are out of range.
        """
        lifecycle = self.config.lifecycle

        if min_score is None:
            min_score = spec.quality.min_score
        if min_score is None:
            min_score = lifecycle.min_score
        if max_iterations is None:
            max_iterations = spec.quality.max_iterations
        if max_iterations is None:
            max_iterations = lifecycle.max_iterations
        if no_questions is None:
            no_questions = lifecycle.no_questions
        validate_lifecycle(min_score, max_iterations)

        return LifecycleOptions(
            spec=spec,
            project_path=Path(self.config.repo_root),
            output_path=Path(output_path) if output_path else self.config.output_path,
            provider=self.provider,
            agent_config=self.config.agents,
            min_score=min_score,
            max_iterations=max_iterations,
            no_questions=no_questions,
            max_questions=lifecycle.max_questions,
            on_progress=on_progress,
            logger=logger,
            swarm_dir=self.config.swarm_dir,
        )

    async def run(
        self,
        spec_file: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        min_score: Optional[int] = None,
        max_iterations: Optional[int] = None,
        no_questions: Optional[bool] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> LifecycleContext:
        """
        Load a spec file and run the full lifecycle.

        Raises:
            SpecLoadError: If the spec file cannot be loaded.
            ConfigError: If thresholds are out of range.
            Exception: Any fatal stage error, re-raised by the lifecycle.
        """
        spec = load_spec(spec_file)
        logger = self._logger or get_logger(spec.project_name, self.config.logs_path)
        options = self.build_options(
            spec,
            output_path=output_path,
            min_score=min_score,
            max_iterations=max_iterations,
            no_questions=no_questions,
            on_progress=on_progress,
            logger=logger,
        )

        run_id = f"run-{uuid.uuid4().hex[:8]}"
        with logger.run_context(run_id):
            return await run_swarm_lifecycle(options)
