"""
Feature Swarm - Autonomous multi-agent feature delivery.

Drives PM, architect, TDD developer, reviewer and integrator agents through a
gated pipeline that turns a project spec into reviewed, integrated features.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
