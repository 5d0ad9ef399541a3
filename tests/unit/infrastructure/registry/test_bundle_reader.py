"""Unit tests for RegistryBundleReader."""

import pytest

from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.bundle.port.bundle_reader import ArtifactKind
from bdesc.domain.shared.error import MalformedBundleError
from bdesc.infrastructure.registry.reader import RegistryBundleReader, extract_files

SHA = "sha256:" + "e" * 64

LOCK = f"""\
apiVersion: imgpkg.carvel.dev/v1alpha1
kind: ImagesLock
images:
- image: registry.io/img1@{SHA}
  annotations:
    kbld.carvel.dev/id: my.registry.io/simple-application
"""


def ref(text: str) -> ImageReference:
    return ImageReference.parse(text)


@pytest.fixture
def reader(make_client) -> RegistryBundleReader:
    return RegistryBundleReader(make_client())


class TestExtractFiles:
    def test_gzip_and_plain_tarballs(self, make_layer):
        for gzip in (True, False):
            blob = make_layer({"./.imgpkg/images.yml": "a", "other.txt": "b"}, gzip=gzip)

            assert extract_files(blob, {".imgpkg/images.yml"}) == {".imgpkg/images.yml": b"a"}

    def test_garbage_is_malformed(self):
        with pytest.raises(MalformedBundleError):
            extract_files(b"definitely not a tarball", {".imgpkg/images.yml"})


class TestArtifactKind:
    @pytest.mark.asyncio
    async def test_bundle_label(self, server, reader):
        digest = server.push_bundle("team/bundle", LOCK)

        assert await reader.artifact_kind(ref(f"registry.io/team/bundle@{digest}")) == ArtifactKind.BUNDLE

    @pytest.mark.asyncio
    async def test_plain_image(self, server, reader):
        digest = server.push_image("team/app", labels={"maintainer": "someone"})

        assert await reader.artifact_kind(ref(f"registry.io/team/app@{digest}")) == ArtifactKind.IMAGE

    @pytest.mark.asyncio
    async def test_index_is_an_image(self, server, reader):
        digest = server.push_index("team/multi")

        assert await reader.artifact_kind(ref(f"registry.io/team/multi@{digest}")) == ArtifactKind.IMAGE


class TestReadBundle:
    @pytest.mark.asyncio
    async def test_reads_lock_and_metadata(self, server, reader):
        digest = server.push_bundle(
            "team/bundle",
            LOCK,
            metadata="authors:\n- name: Carvel\nmetadata:\n  tier: gold\n",
        )

        contents = await reader.read_bundle(ref(f"registry.io/team/bundle@{digest}"))

        [entry] = contents.lock.images
        assert entry.image == f"registry.io/img1@{SHA}"
        assert entry.annotations == {"kbld.carvel.dev/id": "my.registry.io/simple-application"}
        assert contents.metadata.authors[0].name == "Carvel"
        assert contents.metadata.metadata == {"tier": "gold"}

    @pytest.mark.asyncio
    async def test_manifest_fetched_once_for_kind_and_contents(self, server, reader):
        digest = server.push_bundle("team/bundle", LOCK)
        bundle = ref(f"registry.io/team/bundle@{digest}")

        await reader.artifact_kind(bundle)
        await reader.read_bundle(bundle)
        assert await reader.exists(bundle)

        manifest_requests = [r for r in server.requests if "/manifests/" in r.url.path]
        assert len(manifest_requests) == 1

    @pytest.mark.asyncio
    async def test_missing_lock(self, server, reader, make_layer):
        digest = server.push_image("team/app", layers=[make_layer({"app.yml": "x: 1"})])

        with pytest.raises(MalformedBundleError, match="images.yml"):
            await reader.read_bundle(ref(f"registry.io/team/app@{digest}"))

    @pytest.mark.asyncio
    async def test_invalid_lock(self, server, reader):
        digest = server.push_bundle("team/bundle", "kind: ImagesLock\nimages:\n- image: registry.io/img1:latest\n")

        with pytest.raises(MalformedBundleError, match="Invalid .imgpkg/images.yml"):
            await reader.read_bundle(ref(f"registry.io/team/bundle@{digest}"))

    @pytest.mark.asyncio
    async def test_unparseable_yaml(self, server, reader):
        digest = server.push_bundle("team/bundle", "images: [unclosed\n")

        with pytest.raises(MalformedBundleError):
            await reader.read_bundle(ref(f"registry.io/team/bundle@{digest}"))


class TestResolveDigest:
    @pytest.mark.asyncio
    async def test_tag(self, server, reader):
        digest = server.push_bundle("team/bundle", LOCK, tag="v1.0.0")

        resolved = await reader.resolve_digest(ref("registry.io/team/bundle:v1.0.0"))

        assert str(resolved) == f"registry.io/team/bundle@{digest}"

    @pytest.mark.asyncio
    async def test_digest_needs_no_request(self, server, reader):
        resolved = await reader.resolve_digest(ref(f"registry.io/team/bundle:v1@{SHA}"))

        assert str(resolved) == f"registry.io/team/bundle@{SHA}"
        assert server.requests == []
