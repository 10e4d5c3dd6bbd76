"""
Projection Module

Reflection-free mapping of stored documents onto narrower view shapes.
"""

from .mapper import ProjectionMapper, ProjectionSpec, ProjectMap, project_map

__all__ = [
    "ProjectMap",
    "ProjectionMapper",
    "ProjectionSpec",
    "project_map",
]
