"""
Project spec loading for Feature Swarm.

Reads a YAML spec file into a SwarmSpec:

    project:
      name: todo-api
      description: REST API for todos
    tech_stack:
      language: python
      framework: fastapi
    features:
      - id: f-1
        name: Create todo
        priority: high
        dependencies: []
        acceptance_criteria:
          - POST /todos returns 201
    quality:
      min_score: 85
      max_iterations: 10
      min_coverage: 80
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

from feature_swarm.errors import SwarmError
from feature_swarm.models import Feature, QualityConfig, SwarmSpec, TechStack


class SpecLoadError(SwarmError):
    """Raised when a spec file is missing or malformed."""
    pass


def _as_list(value: Any, field_name: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [value]
    raise SpecLoadError(f"'{field_name}' must be a list")


def _parse_feature(data: Any, index: int) -> Feature:
    if not isinstance(data, dict):
        raise SpecLoadError(f"Feature #{index} must be a mapping")
    feature_id = str(data.get("id") or f"f-{index}")
    return Feature(
        id=feature_id,
        name=str(data.get("name") or feature_id),
        description=str(data.get("description") or ""),
        priority=str(data.get("priority") or "medium"),
        dependencies=tuple(
            str(d) for d in _as_list(data.get("dependencies"), f"{feature_id}.dependencies")
        ),
        acceptance_criteria=tuple(
            str(c) for c in _as_list(
                data.get("acceptance_criteria"), f"{feature_id}.acceptance_criteria"
            )
        ),
    )


def _parse_quality(data: Any) -> QualityConfig:
    if data is None:
        return QualityConfig()
    if not isinstance(data, dict):
        raise SpecLoadError("'quality' must be a mapping")
    min_score = data.get("min_score")
    max_iterations = data.get("max_iterations")
    try:
        return QualityConfig(
            min_score=int(min_score) if min_score is not None else None,
            max_iterations=int(max_iterations) if max_iterations is not None else None,
            min_coverage=float(data.get("min_coverage", QualityConfig().min_coverage)),
        )
    except (TypeError, ValueError) as e:
        raise SpecLoadError(f"Invalid quality settings: {e}")


def _parse_tech_stack(data: Any) -> TechStack:
    if data is None:
        return TechStack()
    if isinstance(data, str):
        return TechStack(language=data)
    if not isinstance(data, dict):
        raise SpecLoadError("'tech_stack' must be a mapping")
    return TechStack(
        language=str(data.get("language") or ""),
        framework=data.get("framework"),
        database=data.get("database"),
        testing=data.get("testing"),
    )


def parse_spec(data: Any, raw_content: str = "") -> SwarmSpec:
    """
    Build a SwarmSpec from already-parsed YAML data.

    Raises:
        SpecLoadError: If the project name is missing or feature ids repeat.
    """
    if not isinstance(data, dict):
        raise SpecLoadError("Spec must be a YAML mapping")

    project = data.get("project") or {}
    if not isinstance(project, dict):
        raise SpecLoadError("'project' must be a mapping")
    name = project.get("name")
    if not name:
        raise SpecLoadError("Spec is missing project.name")

    features = [
        _parse_feature(item, i)
        for i, item in enumerate(_as_list(data.get("features"), "features"), start=1)
    ]
    seen: set[str] = set()
    for feature in features:
        if feature.id in seen:
            raise SpecLoadError(f"Duplicate feature id: {feature.id}")
        seen.add(feature.id)

    return SwarmSpec(
        project_name=str(name),
        description=str(project.get("description") or ""),
        tech_stack=_parse_tech_stack(data.get("tech_stack")),
        features=tuple(features),
        quality=_parse_quality(data.get("quality")),
        raw_content=raw_content,
    )


def load_spec(spec_path: Union[str, Path]) -> SwarmSpec:
    """
    Load a spec file.

    Raises:
        SpecLoadError: If the file is missing, not valid YAML, or malformed.
    """
    path = Path(spec_path)
    if not path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    raw = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in spec file: {e}")

    if not data:
        raise SpecLoadError("Spec file is empty")

    return parse_spec(data, raw_content=raw)
