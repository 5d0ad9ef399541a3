"""Registry adapter for the BundleReader port."""

import io
import logging
import tarfile
from typing import TypeVar

import yaml
from pydantic import ValidationError

from bdesc.domain.bundle.model.lock import (
    BUNDLE_METADATA_PATH,
    IMAGES_LOCK_PATH,
    BundleContents,
    BundleMetadata,
    ImagesLock,
)
from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.bundle.port.bundle_reader import ArtifactKind, BundleReader
from bdesc.domain.shared.error import MalformedBundleError, RegistryError
from bdesc.infrastructure.registry.client import RegistryClient
from bdesc.infrastructure.registry.models import BUNDLE_CONFIG_LABEL, ImageConfig, Manifest

logger = logging.getLogger(__name__)

M = TypeVar("M", ImagesLock, BundleMetadata)


def extract_files(blob: bytes, wanted: set[str]) -> dict[str, bytes]:
    """Pull the wanted paths out of a (possibly gzipped) layer tarball."""
    found: dict[str, bytes] = {}
    try:
        with tarfile.open(fileobj=io.BytesIO(blob), mode="r:*") as tar:
            for member in tar:
                name = member.name.removeprefix("./").lstrip("/")
                if name not in wanted or not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is not None:
                    found[name] = extracted.read()
    except tarfile.TarError as e:
        raise MalformedBundleError(f"Bundle layer is not a readable tarball: {e}") from e
    return found


class RegistryBundleReader(BundleReader):
    """Reads bundles straight from a registry.

    Manifests fetched by digest are immutable and cached for the lifetime of
    the reader, so classifying and then reading a bundle costs one manifest
    request.
    """

    def __init__(self, client: RegistryClient) -> None:
        self._client = client
        self._manifests: dict[str, Manifest] = {}

    async def resolve_digest(self, ref: ImageReference) -> ImageReference:
        if ref.is_digest:
            return ref.with_digest(ref.digest)  # type: ignore[arg-type]
        manifest = await self._manifest(ref)
        logger.debug("Resolved %s to %s", ref, manifest.digest)
        return ref.with_digest(manifest.digest)

    async def exists(self, ref: ImageReference) -> bool:
        if str(ref) in self._manifests:
            return True
        return await self._client.has_manifest(ref)

    async def artifact_kind(self, ref: ImageReference) -> ArtifactKind:
        manifest = await self._manifest(ref)
        if manifest.is_index or manifest.config is None:
            return ArtifactKind.IMAGE
        blob = await self._client.get_blob(ref, manifest.config.digest)
        try:
            config = ImageConfig.model_validate_json(blob)
        except ValidationError as e:
            raise RegistryError(f"Unexpected image config for {ref}: {e}") from e
        if BUNDLE_CONFIG_LABEL in config.labels:
            return ArtifactKind.BUNDLE
        return ArtifactKind.IMAGE

    async def read_bundle(self, ref: ImageReference) -> BundleContents:
        manifest = await self._manifest(ref)
        if manifest.is_index:
            raise MalformedBundleError(f"Expected {ref} to be a bundle image, found an index")

        wanted = {IMAGES_LOCK_PATH, BUNDLE_METADATA_PATH}
        files: dict[str, bytes] = {}
        # Later layers win, as they would when the image is unpacked
        for layer in manifest.layers:
            blob = await self._client.get_blob(ref, layer.digest)
            files.update(extract_files(blob, wanted))

        if IMAGES_LOCK_PATH not in files:
            raise MalformedBundleError(f"Bundle {ref} has no {IMAGES_LOCK_PATH}")
        lock = self._parse(ref, IMAGES_LOCK_PATH, files[IMAGES_LOCK_PATH], ImagesLock)
        metadata = BundleMetadata()
        if BUNDLE_METADATA_PATH in files:
            metadata = self._parse(ref, BUNDLE_METADATA_PATH, files[BUNDLE_METADATA_PATH], BundleMetadata)
        return BundleContents(lock=lock, metadata=metadata)

    async def _manifest(self, ref: ImageReference) -> Manifest:
        key = str(ref)
        if key in self._manifests:
            return self._manifests[key]
        manifest = await self._client.get_manifest(ref)
        if ref.is_digest:
            self._manifests[key] = manifest
        return manifest

    @staticmethod
    def _parse(
        ref: ImageReference, path: str, raw: bytes, model: type[M]
    ) -> M:
        try:
            data = yaml.safe_load(raw) or {}
            return model.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise MalformedBundleError(f"Invalid {path} in bundle {ref}: {e}") from e
