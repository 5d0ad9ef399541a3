"""The description tree: the resolved composition of a bundle.

A BundleDescription holds its nested bundles and its images as two separate
ordered tuples. Order is the order the resolver discovered them in; the same
digest may appear under several parents.
"""

from __future__ import annotations

from pydantic import Field

from bdesc.domain.bundle.model.lock import BundleMetadata
from bdesc.domain.shared.model.value import ValueObject


class ImageDescription(ValueObject):
    """A leaf image."""

    reference: str  # digest reference where the image lives now
    origin: str  # reference it was copied from
    annotations: dict[str, str] = {}


class Content(ValueObject):
    bundles: tuple[BundleDescription, ...] = ()
    images: tuple[ImageDescription, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.bundles and not self.images


class BundleDescription(ValueObject):
    """A bundle and, recursively, everything it references."""

    reference: str
    origin: str
    annotations: dict[str, str] = {}  # set by the parent's images lock
    metadata: BundleMetadata = BundleMetadata()
    content: Content = Field(default_factory=Content)

    def walk_bundles(self):
        """Yield (depth, bundle) for every nested bundle, depth-first, root excluded."""
        for bundle in self.content.bundles:
            yield 1, bundle
            for depth, nested in bundle.walk_bundles():
                yield depth + 1, nested

    @property
    def bundle_count(self) -> int:
        return sum(1 for _ in self.walk_bundles())

    @property
    def image_count(self) -> int:
        return len(self.content.images) + sum(
            len(bundle.content.images) for _, bundle in self.walk_bundles()
        )


Content.model_rebuild()
