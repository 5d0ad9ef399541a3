"""Port for reading bundles and images from a registry."""

from abc import abstractmethod
from enum import StrEnum
from typing import Protocol

from bdesc.domain.bundle.model.lock import BundleContents
from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.shared.port import Port


class ArtifactKind(StrEnum):
    BUNDLE = "bundle"
    IMAGE = "image"


class BundleReader(Port, Protocol):
    """Read-only access to artifacts. Every method is one remote fetch operation.

    Implementations raise ResolutionError subclasses on failure.
    """

    @abstractmethod
    async def resolve_digest(self, ref: ImageReference) -> ImageReference:
        """Return ref pinned to the digest it currently points at."""
        ...

    @abstractmethod
    async def exists(self, ref: ImageReference) -> bool:
        """Whether a manifest exists at ref."""
        ...

    @abstractmethod
    async def artifact_kind(self, ref: ImageReference) -> ArtifactKind: ...

    @abstractmethod
    async def read_bundle(self, ref: ImageReference) -> BundleContents:
        """Read the images lock and metadata embedded in a bundle."""
        ...
