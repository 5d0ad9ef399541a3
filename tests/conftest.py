"""Global test fixtures."""

import asyncio
import hashlib

import pytest

from bdesc.domain.bundle.model.lock import BundleContents, BundleMetadata, ImagesLock, LockedImage
from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.bundle.port.bundle_reader import ArtifactKind, BundleReader
from bdesc.domain.shared.error import ArtifactNotFoundError, RegistryError


def make_digest(seed: str) -> str:
    return f"sha256:{hashlib.sha256(seed.encode()).hexdigest()}"


def key(reference: str | ImageReference) -> str:
    if isinstance(reference, ImageReference):
        return str(reference)
    return str(ImageReference.parse(reference))


class FakeRegistry(BundleReader):
    """In-memory BundleReader that records calls and concurrent load."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.bundles: dict[str, BundleContents] = {}
        self.images: set[str] = set()
        self.tags: dict[str, str] = {}
        self.failing: set[str] = set()
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    # ---------- setup helpers ----------

    def add_image(self, reference: str) -> str:
        self.images.add(key(reference))
        return reference

    def add_bundle(
        self,
        reference: str,
        entries: list[str | tuple[str, dict[str, str]]] = (),  # type: ignore[assignment]
        metadata: BundleMetadata | None = None,
    ) -> str:
        images = []
        for entry in entries:
            image, annotations = entry if isinstance(entry, tuple) else (entry, {})
            images.append(LockedImage(image=image, annotations=annotations))
        self.bundles[key(reference)] = BundleContents(
            lock=ImagesLock(images=tuple(images)),
            metadata=metadata or BundleMetadata(),
        )
        return reference

    def add_tag(self, tagged: str, reference: str) -> None:
        self.tags[key(tagged)] = key(reference)

    def fail_on(self, reference: str) -> None:
        self.failing.add(key(reference))

    # ---------- BundleReader ----------

    async def resolve_digest(self, ref: ImageReference) -> ImageReference:
        await self._fetch("resolve_digest", ref)
        if ref.is_digest:
            return ref.with_digest(ref.digest)  # type: ignore[arg-type]
        if key(ref) not in self.tags:
            raise ArtifactNotFoundError(f"Manifest not found: {ref}")
        return ImageReference.parse(self.tags[key(ref)])

    async def exists(self, ref: ImageReference) -> bool:
        await self._fetch("exists", ref)
        return key(ref) in self.bundles or key(ref) in self.images

    async def artifact_kind(self, ref: ImageReference) -> ArtifactKind:
        await self._fetch("artifact_kind", ref)
        if key(ref) in self.bundles:
            return ArtifactKind.BUNDLE
        if key(ref) in self.images:
            return ArtifactKind.IMAGE
        raise ArtifactNotFoundError(f"Manifest not found: {ref}")

    async def read_bundle(self, ref: ImageReference) -> BundleContents:
        await self._fetch("read_bundle", ref)
        return self.bundles[key(ref)]

    async def _fetch(self, operation: str, ref: ImageReference) -> None:
        self.calls.append((operation, key(ref)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key(ref), self.delay))
            if key(ref) in self.failing:
                raise RegistryError(f"Registry returned 500 for {ref}", status_code=500)
        finally:
            self.in_flight -= 1


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def slow_registry() -> FakeRegistry:
    return FakeRegistry(delay=0.01)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep developer settings out of tests."""
    for name in ("BDESC_CONFIG_FILE", "BDESC_LOG_FILE", "BDESC_REGISTRY__USERNAME",
                 "BDESC_REGISTRY__PASSWORD", "BDESC_REGISTRY__INSECURE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)  # no stray .env


@pytest.fixture
def digest():
    """Deterministic sha256 digest from a seed string."""
    return make_digest
