"""Artifact processing pipeline."""

from .runner import ArtifactPipeline
from .scheduler import TaskScheduler

__all__ = ["ArtifactPipeline", "TaskScheduler"]
