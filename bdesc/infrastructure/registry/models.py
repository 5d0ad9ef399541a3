"""Pydantic models for registry API payloads (OCI image spec / Docker v2).

Spec references:
- https://github.com/opencontainers/image-spec/blob/main/manifest.md
- https://github.com/opencontainers/image-spec/blob/main/image-index.md
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Manifest media types
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

MANIFEST_MEDIA_TYPES = (OCI_MANIFEST, DOCKER_MANIFEST)
INDEX_MEDIA_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)
ACCEPT_MANIFESTS = ", ".join((*MANIFEST_MEDIA_TYPES, *INDEX_MEDIA_TYPES))

# Label set on the config of every imgpkg bundle image
BUNDLE_CONFIG_LABEL = "dev.carvel.imgpkg.bundle"


class Descriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    media_type: str = Field(default="", alias="mediaType")
    digest: str
    size: int = 0
    annotations: dict[str, str] | None = None


class Manifest(BaseModel):
    """An image manifest or an index, distinguished by media_type."""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str = Field(default="", alias="mediaType")
    config: Descriptor | None = None
    layers: list[Descriptor] = []
    manifests: list[Descriptor] = []

    # Not part of the payload; filled from response headers
    digest: str = ""

    @property
    def is_index(self) -> bool:
        if self.media_type:
            return self.media_type in INDEX_MEDIA_TYPES
        return bool(self.manifests) and self.config is None


class ImageConfig(BaseModel):
    """The subset of an image config blob describe needs."""

    model_config = ConfigDict(populate_by_name=True)

    config: dict[str, Any] | None = None

    @property
    def labels(self) -> dict[str, str]:
        if not self.config:
            return {}
        return self.config.get("Labels") or {}
