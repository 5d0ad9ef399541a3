from bdesc.domain.bundle.model.description import (
    BundleDescription,
    Content,
    ImageDescription,
)
from bdesc.domain.bundle.model.lock import (
    Author,
    BundleContents,
    BundleMetadata,
    ImagesLock,
    LockedImage,
    Website,
)
from bdesc.domain.bundle.model.reference import ImageReference, is_digest_reference

__all__ = [
    "Author",
    "BundleContents",
    "BundleDescription",
    "BundleMetadata",
    "Content",
    "ImageDescription",
    "ImageReference",
    "ImagesLock",
    "LockedImage",
    "Website",
    "is_digest_reference",
]
