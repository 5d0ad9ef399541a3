"""Async client for the OCI distribution (registry v2) API using httpx."""

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from pydantic import ValidationError

from bdesc.config import RegistryConfig
from bdesc.domain.bundle.model.reference import DEFAULT_REGISTRY, ImageReference
from bdesc.domain.shared.error import (
    ArtifactNotFoundError,
    AuthenticationError,
    RegistryError,
)
from bdesc.infrastructure.registry.auth import (
    basic_authorization,
    parse_challenge,
    pull_scope,
)
from bdesc.infrastructure.registry.models import ACCEPT_MANIFESTS, Manifest

logger = logging.getLogger(__name__)

# Docker Hub serves the v2 API from a different host than its reference name
DOCKER_HUB_API_HOST = "registry-1.docker.io"

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.ConnectError, httpx.ReadError)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    retries: int = 3,
    exceptions: tuple[type[Exception], ...] = (Exception,),
) -> T:
    """Retry an async call on transient errors with linear backoff.

    Args:
        fn: Zero-argument callable returning an awaitable.
        retries: Max retry attempts (total attempts = retries + 1).
        exceptions: Exception types to catch and retry on.

    Returns:
        Result of fn() on success.

    Raises:
        The last exception if all retries fail.
    """
    last_error: Exception | None = None
    for attempt in range(retries + 1):
        try:
            return await fn()
        except exceptions as e:
            last_error = e
            if attempt < retries:
                logger.debug("Transient error (%s), retry %d/%d", e, attempt + 1, retries)
                await asyncio.sleep(0.2 * (attempt + 1))  # Backoff: 0.2, 0.4, 0.6s
    raise last_error  # type: ignore[misc]


def create_http_client(config: RegistryConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,  # blob downloads often redirect to object storage
        headers={"User-Agent": config.user_agent},
    )


def sha256_digest(content: bytes) -> str:
    return f"sha256:{hashlib.sha256(content).hexdigest()}"


class RegistryClient:
    """Fetches manifests and blobs, handling token auth per repository."""

    def __init__(self, http: httpx.AsyncClient, config: RegistryConfig) -> None:
        self._http = http
        self._config = config
        self._authorization: dict[str, str] = {}  # repository context -> header value

    def _url(self, ref: ImageReference, kind: str, identifier: str) -> str:
        scheme = "http" if self._config.insecure else "https"
        host = DOCKER_HUB_API_HOST if ref.registry == DEFAULT_REGISTRY else ref.registry
        return f"{scheme}://{host}/v2/{ref.repository}/{kind}/{identifier}"

    # -------------------------------------------------------------------------
    # Manifests
    # -------------------------------------------------------------------------

    async def get_manifest(self, ref: ImageReference) -> Manifest:
        """Fetch the manifest (or index) ref points at.

        Raises:
            ArtifactNotFoundError: The registry has no such manifest.
            RegistryError: Any other failure, including a digest mismatch.
        """
        url = self._url(ref, "manifests", ref.identifier)
        response = await self._request("GET", ref, url, headers={"Accept": ACCEPT_MANIFESTS})
        if response.status_code == 404:
            raise ArtifactNotFoundError(f"Manifest not found: {ref}")
        self._raise_for_status(response, ref)

        content = response.content
        if ref.digest is not None:
            self._verify(ref, ref.digest, content)
        try:
            manifest = Manifest.model_validate_json(content)
        except ValidationError as e:
            raise RegistryError(f"Unexpected manifest payload for {ref}: {e}") from e

        media_type = manifest.media_type or response.headers.get("Content-Type", "").split(";")[0]
        digest = (
            ref.digest
            or response.headers.get("Docker-Content-Digest")
            or sha256_digest(content)
        )
        return manifest.model_copy(update={"media_type": media_type, "digest": digest})

    async def has_manifest(self, ref: ImageReference) -> bool:
        url = self._url(ref, "manifests", ref.identifier)
        response = await self._request("HEAD", ref, url, headers={"Accept": ACCEPT_MANIFESTS})
        if response.status_code == 404:
            return False
        self._raise_for_status(response, ref)
        return True

    # -------------------------------------------------------------------------
    # Blobs
    # -------------------------------------------------------------------------

    async def get_blob(self, ref: ImageReference, digest: str) -> bytes:
        url = self._url(ref, "blobs", digest)
        response = await self._request("GET", ref, url)
        if response.status_code == 404:
            raise ArtifactNotFoundError(f"Blob {digest} not found in {ref.context}")
        self._raise_for_status(response, ref)
        self._verify(ref, digest, response.content)
        return response.content

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        ref: ImageReference,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = dict(headers or {})
        if authorization := self._authorization.get(ref.context):
            headers["Authorization"] = authorization

        response = await self._send(method, url, headers=headers)
        if response.status_code == 401 and "WWW-Authenticate" in response.headers:
            authorization = await self._authorize(ref, response.headers["WWW-Authenticate"])
            self._authorization[ref.context] = authorization
            headers["Authorization"] = authorization
            response = await self._send(method, url, headers=headers)
            if response.status_code in (401, 403):
                raise AuthenticationError(
                    f"Registry {ref.registry} denied access to {ref.repository}",
                    status_code=response.status_code,
                )
        return response

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await with_retry(
                lambda: self._http.request(method, url, **kwargs),
                retries=self._config.retries,
                exceptions=TRANSIENT_ERRORS,
            )
        except httpx.HTTPError as e:
            raise RegistryError(f"Request to {url} failed: {e}") from e

    async def _authorize(self, ref: ImageReference, header: str) -> str:
        """Answer an auth challenge, returning an Authorization header value."""
        challenge = parse_challenge(header)
        username, password = self._config.username, self._config.password

        if challenge.scheme == "basic":
            if not self._config.has_credentials:
                raise AuthenticationError(f"Registry {ref.registry} requires credentials")
            return basic_authorization(username, password)

        if challenge.scheme != "bearer" or not challenge.realm:
            raise AuthenticationError(f"Unsupported auth challenge from {ref.registry}: {header}")

        params = {"scope": pull_scope(ref.repository)}
        if challenge.service:
            params["service"] = challenge.service
        auth = (username, password or "") if self._config.has_credentials else None

        logger.debug("Requesting token for %s from %s", ref.context, challenge.realm)
        response = await self._send("GET", challenge.realm, params=params, auth=auth)
        if response.status_code != 200:
            raise AuthenticationError(
                f"Token request to {challenge.realm} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Invalid token response from {challenge.realm}") from e
        token = data.get("token") or data.get("access_token")
        if not token:
            raise AuthenticationError(f"No token in response from {challenge.realm}")
        return f"Bearer {token}"

    @staticmethod
    def _raise_for_status(response: httpx.Response, ref: ImageReference) -> None:
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Registry {ref.registry} denied access to {ref.repository}",
                status_code=response.status_code,
            )
        if response.is_error:
            raise RegistryError(
                f"Registry {ref.registry} returned {response.status_code} for {ref}",
                status_code=response.status_code,
            )

    @staticmethod
    def _verify(ref: ImageReference, expected: str, content: bytes) -> None:
        if not expected.startswith("sha256:"):
            return
        actual = sha256_digest(content)
        if actual != expected:
            raise RegistryError(f"Digest mismatch for {ref.context}: expected {expected}, got {actual}")
