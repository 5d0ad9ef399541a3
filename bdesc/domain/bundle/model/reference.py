"""Registry image references.

Reference format: [registry/]repository[:tag][@algorithm:hex]

Follows the distribution reference grammar closely enough for describe:
- the first path component is a registry host when it contains '.' or ':',
  or is 'localhost'; otherwise the image lives on Docker Hub
- Docker Hub single-component repositories get an implicit 'library/'
- a digest pins content; a reference with a digest is in "digest form"
"""

from __future__ import annotations

import re
from typing import ClassVar, Self

from pydantic import field_validator

from bdesc.domain.shared.error import InvalidReferenceError
from bdesc.domain.shared.model.value import ValueObject

DEFAULT_REGISTRY = "index.docker.io"
DOCKER_HUB_ALIASES = frozenset({"docker.io", "index.docker.io", "registry-1.docker.io"})


class ImageReference(ValueObject):
    """A parsed image reference, optionally pinned to a digest."""

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None

    _repository_re: ClassVar[re.Pattern] = re.compile(
        r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*(?:/[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*)*$"
    )
    _tag_re: ClassVar[re.Pattern] = re.compile(r"^[\w][\w.-]{0,127}$")
    _digest_re: ClassVar[re.Pattern] = re.compile(
        r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$"
    )
    _sha256_re: ClassVar[re.Pattern] = re.compile(r"^sha256:[a-f0-9]{64}$")

    @field_validator("repository")
    @classmethod
    def _repository_ok(cls, v: str) -> str:
        if not cls._repository_re.match(v):
            raise ValueError(f"invalid repository name '{v}'")
        return v

    @field_validator("tag")
    @classmethod
    def _tag_ok(cls, v: str | None) -> str | None:
        if v is not None and not cls._tag_re.match(v):
            raise ValueError(f"invalid tag '{v}'")
        return v

    @field_validator("digest")
    @classmethod
    def _digest_ok(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not cls._digest_re.match(v):
            raise ValueError(f"invalid digest '{v}'")
        if v.startswith("sha256:") and not cls._sha256_re.match(v):
            raise ValueError(f"invalid sha256 digest '{v}'")
        return v

    # ---------- factory & parsing ----------

    @classmethod
    def parse(cls, reference: str) -> Self:
        """Parse a reference string.

        Raises:
            InvalidReferenceError: If the string is not a valid reference.
        """
        raw = reference.strip()
        if not raw:
            raise InvalidReferenceError("empty image reference", reference=reference)

        name, digest = raw, None
        if "@" in raw:
            name, digest = raw.split("@", 1)

        tag = None
        last_slash = name.rfind("/")
        last_colon = name.rfind(":")
        if last_colon > last_slash:
            name, tag = name[:last_colon], name[last_colon + 1 :]

        registry, repository = cls._split_registry(name)

        try:
            return cls(registry=registry, repository=repository, tag=tag, digest=digest)
        except ValueError as e:
            raise InvalidReferenceError(
                f"could not parse reference '{reference}': {e}", reference=reference
            ) from e

    @staticmethod
    def _split_registry(name: str) -> tuple[str, str]:
        first, sep, rest = name.partition("/")
        if sep and ("." in first or ":" in first or first == "localhost"):
            registry, repository = first, rest
        else:
            registry, repository = DEFAULT_REGISTRY, name
        if registry in DOCKER_HUB_ALIASES:
            registry = DEFAULT_REGISTRY
            if "/" not in repository:
                repository = f"library/{repository}"
        return registry, repository

    # ---------- accessors ----------

    @property
    def is_digest(self) -> bool:
        return self.digest is not None

    @property
    def digest_value(self) -> str:
        """The hex part of the digest (no algorithm prefix)."""
        if self.digest is None:
            raise ValueError(f"{self} is not a digest reference")
        return self.digest.split(":", 1)[1]

    @property
    def context(self) -> str:
        """Registry and repository without tag or digest."""
        return f"{self.registry}/{self.repository}"

    @property
    def identifier(self) -> str:
        """The manifest identifier used in registry URLs: digest, else tag, else 'latest'."""
        return self.digest or self.tag or "latest"

    def with_digest(self, digest: str) -> "ImageReference":
        """Pin this repository to a digest, dropping any tag."""
        return ImageReference(registry=self.registry, repository=self.repository, digest=digest)

    def in_repository_of(self, other: "ImageReference") -> "ImageReference":
        """Same digest, located in other's repository."""
        if self.digest is None:
            raise ValueError(f"{self} is not a digest reference")
        return other.with_digest(self.digest)

    def __str__(self) -> str:
        out = self.context
        if self.tag is not None:
            out += f":{self.tag}"
        if self.digest is not None:
            out += f"@{self.digest}"
        return out


def is_digest_reference(reference: str) -> bool:
    """True when the string parses as a reference pinned to a digest."""
    try:
        return ImageReference.parse(reference).is_digest
    except InvalidReferenceError:
        return False
