"""Cross-run learning for Feature Swarm."""

from feature_swarm.learning.knowledge_base import (
    KnowledgeBase,
    KnowledgeEntry,
    KnowledgePattern,
    format_for_context,
)

__all__ = ["KnowledgeBase", "KnowledgeEntry", "KnowledgePattern", "format_for_context"]
