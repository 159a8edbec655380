"""Evidence artifacts: records, blobs, processing state and guarded deletion."""

from .models import Artifact
from .store import ArtifactStore

__all__ = ["Artifact", "ArtifactStore"]
