"""Resolve a bundle reference into a full description tree."""

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import Any, TypeVar

from bdesc.domain.bundle.model.description import (
    BundleDescription,
    Content,
    ImageDescription,
)
from bdesc.domain.bundle.model.lock import LockedImage
from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.bundle.port.bundle_reader import ArtifactKind, BundleReader
from bdesc.domain.bundle.service.permit import PermitPool
from bdesc.domain.shared.error import (
    ArtifactNotFoundError,
    ConfigurationError,
    CycleDetectedError,
    MaxDepthExceededError,
    NotABundleError,
)
from bdesc.domain.shared.service import Service

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

T = TypeVar("T")


async def gather_in_order(coros: Sequence[Coroutine[Any, Any, T]]) -> list[T]:
    """Run coroutines concurrently and return results in input order.

    The first failure cancels the remaining coroutines and is re-raised on its
    own, not wrapped in an ExceptionGroup.
    """
    if not coros:
        return []
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except BaseExceptionGroup as eg:
        raise _first_leaf(eg) from None
    return [task.result() for task in tasks]


def _first_leaf(eg: BaseExceptionGroup) -> BaseException:
    first = eg.exceptions[0]
    if isinstance(first, BaseExceptionGroup):
        return _first_leaf(first)
    return first


class DescriptionResolver(Service):
    """Walks a bundle graph through a BundleReader.

    All reader calls of one resolve() share a single PermitPool, so at most
    `concurrency` fetches are in flight across the whole graph. A permit is
    held only around a reader call, never while waiting on children.
    """

    reader: BundleReader
    max_depth: int = DEFAULT_MAX_DEPTH

    async def resolve(self, root_reference: str, concurrency: int) -> BundleDescription:
        """Resolve root_reference (tag or digest) into a BundleDescription.

        Raises:
            ConfigurationError: concurrency is below 1.
            InvalidReferenceError: root_reference does not parse.
            ResolutionError: anything failed while walking the graph.
        """
        if concurrency < 1:
            raise ConfigurationError("--concurrency must be at least 1")
        ref = ImageReference.parse(root_reference)
        permits = PermitPool(concurrency)

        async with permits.permit():
            root = await self.reader.resolve_digest(ref)
        async with permits.permit():
            kind = await self.reader.artifact_kind(root)
        if kind is not ArtifactKind.BUNDLE:
            raise NotABundleError(f"Expected {root_reference} to be a bundle, found an image")

        logger.debug("Describing bundle %s (concurrency=%d)", root, concurrency)
        description = await self._describe_bundle(permits, root, str(root), {}, ())
        logger.debug(
            "Resolved %s: %d nested bundles, %d images, peak concurrency %d",
            root,
            description.bundle_count,
            description.image_count,
            permits.peak,
        )
        return description

    async def _describe_bundle(
        self,
        permits: PermitPool,
        ref: ImageReference,
        origin: str,
        annotations: dict[str, str],
        ancestry: tuple[str, ...],
    ) -> BundleDescription:
        assert ref.digest is not None
        if ref.digest in ancestry:
            raise CycleDetectedError(f"Bundle {ref} references itself through its own children")
        if len(ancestry) > self.max_depth:
            raise MaxDepthExceededError(
                f"Bundle {ref} is nested deeper than the limit of {self.max_depth}"
            )

        async with permits.permit():
            contents = await self.reader.read_bundle(ref)
        logger.debug("Bundle %s references %d artifacts", ref, len(contents.lock.images))

        path = (*ancestry, ref.digest)
        children = await gather_in_order(
            [self._describe_entry(permits, ref, entry, path) for entry in contents.lock.images]
        )
        return BundleDescription(
            reference=str(ref),
            origin=origin,
            annotations=annotations,
            metadata=contents.metadata,
            content=Content(
                bundles=tuple(c for c in children if isinstance(c, BundleDescription)),
                images=tuple(c for c in children if isinstance(c, ImageDescription)),
            ),
        )

    async def _describe_entry(
        self,
        permits: PermitPool,
        parent: ImageReference,
        entry: LockedImage,
        ancestry: tuple[str, ...],
    ) -> BundleDescription | ImageDescription:
        origin = ImageReference.parse(entry.image)
        location = await self._locate(permits, parent, origin)

        async with permits.permit():
            kind = await self.reader.artifact_kind(location)
        if kind is ArtifactKind.BUNDLE:
            return await self._describe_bundle(
                permits, location, entry.image, dict(entry.annotations), ancestry
            )
        return ImageDescription(
            reference=str(location),
            origin=entry.image,  # as written in the lock
            annotations=dict(entry.annotations),
        )

    async def _locate(
        self, permits: PermitPool, parent: ImageReference, origin: ImageReference
    ) -> ImageReference:
        """Prefer a copy next to the parent bundle, fall back to the origin."""
        candidates = {str(c): c for c in (origin.in_repository_of(parent), origin)}
        for candidate in candidates.values():
            async with permits.permit():
                found = await self.reader.exists(candidate)
            if found:
                return candidate
        raise ArtifactNotFoundError(
            f"Could not find {origin.digest} in {' or '.join(candidates)}"
        )
