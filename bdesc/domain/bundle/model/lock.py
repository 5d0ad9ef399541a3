"""Files embedded in a bundle under .imgpkg/.

images.yml (ImagesLock) lists every image and bundle the bundle references,
each pinned to a digest at the location it was originally pushed to.

bundle.yml (BundleMetadata) carries optional descriptive metadata.
"""

from typing import Any, Literal

from pydantic import Field, field_validator

from bdesc.domain.bundle.model.reference import is_digest_reference
from bdesc.domain.shared.model.value import ValueObject

IMGPKG_DIR = ".imgpkg"
IMAGES_LOCK_PATH = f"{IMGPKG_DIR}/images.yml"
BUNDLE_METADATA_PATH = f"{IMGPKG_DIR}/bundle.yml"

LOCK_API_VERSION = "imgpkg.carvel.dev/v1alpha1"


def _none_to_empty(v: Any) -> Any:
    return {} if v is None else v


class LockedImage(ValueObject):
    """One entry of an images lock."""

    image: str
    annotations: dict[str, str] = {}

    @field_validator("image")
    @classmethod
    def _digest_form(cls, v: str) -> str:
        if not is_digest_reference(v):
            raise ValueError(f"expected image '{v}' to be a digest reference")
        return v

    @field_validator("annotations", mode="before")
    @classmethod
    def _annotations(cls, v: Any) -> Any:
        return _none_to_empty(v)


class ImagesLock(ValueObject):
    api_version: str = Field(default=LOCK_API_VERSION, alias="apiVersion")
    kind: Literal["ImagesLock"] = "ImagesLock"
    images: tuple[LockedImage, ...] = ()

    @field_validator("images", mode="before")
    @classmethod
    def _images(cls, v: Any) -> Any:
        return () if v is None else v


class Author(ValueObject):
    name: str | None = None
    email: str | None = None


class Website(ValueObject):
    url: str


class BundleMetadata(ValueObject):
    """Descriptive metadata of a bundle (authors, websites, free-form key/values)."""

    authors: tuple[Author, ...] = ()
    websites: tuple[Website, ...] = ()
    metadata: dict[str, str] = {}

    @field_validator("authors", "websites", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata(cls, v: Any) -> Any:
        return _none_to_empty(v)


class BundleContents(ValueObject):
    """What a bundle's image carries: its lock file and optional metadata."""

    lock: ImagesLock
    metadata: BundleMetadata = BundleMetadata()
