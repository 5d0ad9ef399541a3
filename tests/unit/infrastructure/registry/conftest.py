"""An in-process OCI registry served through httpx.MockTransport."""

import base64
import hashlib
import io
import json
import tarfile

import httpx
import pytest

from bdesc.config import RegistryConfig
from bdesc.infrastructure.registry.client import RegistryClient
from bdesc.infrastructure.registry.models import BUNDLE_CONFIG_LABEL, OCI_INDEX, OCI_MANIFEST

HOST = "registry.io"


def sha(content: bytes) -> str:
    return f"sha256:{hashlib.sha256(content).hexdigest()}"


def layer(files: dict[str, str], *, gzip: bool = True) -> bytes:
    """Build a layer tarball holding the given path -> text files."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if gzip else "w") as tar:
        for path, text in files.items():
            data = text.encode()
            info = tarfile.TarInfo(name=path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class OciServer:
    """Minimal registry v2 API: manifests, blobs and optional bearer tokens."""

    def __init__(self) -> None:
        self.manifests: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.requests: list[httpx.Request] = []
        self.token: str | None = None
        self.credentials: tuple[str, str] | None = None
        self.connect_failures = 0
        self.tamper: set[str] = set()

    # ---------- content ----------

    def push_blob(self, repo: str, content: bytes) -> str:
        digest = sha(content)
        self.blobs[(repo, digest)] = content
        return digest

    def push_manifest(self, repo: str, manifest: dict, *, tag: str | None = None) -> str:
        content = json.dumps(manifest).encode()
        digest = sha(content)
        media_type = manifest.get("mediaType", OCI_MANIFEST)
        self.manifests[(repo, digest)] = (content, media_type)
        if tag:
            self.manifests[(repo, tag)] = (content, media_type)
        return digest

    def push_image(
        self,
        repo: str,
        *,
        labels: dict[str, str] | None = None,
        layers: list[bytes] = (),  # type: ignore[assignment]
        tag: str | None = None,
    ) -> str:
        config = json.dumps({"config": {"Labels": labels}}).encode()
        config_digest = self.push_blob(repo, config)
        descriptors = [
            {
                "mediaType": "application/vnd.oci.image.layer.v1.tar+gzip",
                "digest": self.push_blob(repo, blob),
                "size": len(blob),
            }
            for blob in layers
        ]
        return self.push_manifest(
            repo,
            {
                "schemaVersion": 2,
                "mediaType": OCI_MANIFEST,
                "config": {
                    "mediaType": "application/vnd.oci.image.config.v1+json",
                    "digest": config_digest,
                    "size": len(config),
                },
                "layers": descriptors,
            },
            tag=tag,
        )

    def push_bundle(
        self,
        repo: str,
        lock: str,
        *,
        metadata: str | None = None,
        tag: str | None = None,
    ) -> str:
        files = {".imgpkg/images.yml": lock}
        if metadata is not None:
            files[".imgpkg/bundle.yml"] = metadata
        return self.push_image(
            repo,
            labels={BUNDLE_CONFIG_LABEL: "true"},
            layers=[layer({"config.yml": "kind: App\n"}), layer(files)],
            tag=tag,
        )

    def push_index(self, repo: str, *, tag: str | None = None) -> str:
        return self.push_manifest(
            repo, {"schemaVersion": 2, "mediaType": OCI_INDEX, "manifests": []}, tag=tag
        )

    # ---------- transport ----------

    def require_token(self, token: str, credentials: tuple[str, str] | None = None) -> None:
        self.token = token
        self.credentials = credentials

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_failures:
            self.connect_failures -= 1
            raise httpx.ConnectError("connection refused", request=request)

        if request.url.path == "/token":
            return self._token(request)

        if self.token and request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(
                401,
                headers={
                    "WWW-Authenticate": f'Bearer realm="https://{HOST}/token",service="{HOST}"'
                },
            )

        path = request.url.path.removeprefix("/v2/")
        for kind in ("manifests", "blobs"):
            repo, sep, identifier = path.rpartition(f"/{kind}/")
            if sep:
                break
        else:
            return httpx.Response(404)

        if kind == "blobs":
            blob = self.blobs.get((repo, identifier))
            if blob is None:
                return httpx.Response(404)
            return httpx.Response(200, content=blob)

        entry = self.manifests.get((repo, identifier))
        if entry is None:
            return httpx.Response(404, json={"errors": [{"code": "MANIFEST_UNKNOWN"}]})
        content, media_type = entry
        headers = {"Content-Type": media_type, "Docker-Content-Digest": sha(content)}
        if identifier in self.tamper:
            content = content + b" "
        return httpx.Response(200, content=content, headers=headers)

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.credentials:
            user, password = self.credentials
            expected = "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()
            if request.headers.get("Authorization") != expected:
                return httpx.Response(401)
        return httpx.Response(200, json={"token": self.token})


@pytest.fixture
def server() -> OciServer:
    return OciServer()


@pytest.fixture
def make_client(server):
    """Build a RegistryClient talking to the in-process server."""

    def _make(**config) -> RegistryClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
        return RegistryClient(http, RegistryConfig(**config))

    return _make


@pytest.fixture
def make_layer():
    return layer
