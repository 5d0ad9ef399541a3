"""Registry authentication challenges (WWW-Authenticate) and credentials."""

import base64
import re
from dataclasses import dataclass, field

_PARAM_RE = re.compile(r'([A-Za-z_]+)=(?:"([^"]*)"|([^,\s]*))')


@dataclass(frozen=True)
class Challenge:
    """A parsed WWW-Authenticate header.

    Example: Bearer realm="https://auth.docker.io/token",service="registry.docker.io"
    """

    scheme: str  # lowercased: "bearer" or "basic"
    params: dict[str, str] = field(default_factory=dict)

    @property
    def realm(self) -> str | None:
        return self.params.get("realm")

    @property
    def service(self) -> str | None:
        return self.params.get("service")

    @property
    def scope(self) -> str | None:
        return self.params.get("scope")


def parse_challenge(header: str) -> Challenge:
    scheme, _, rest = header.strip().partition(" ")
    params = {}
    for match in _PARAM_RE.finditer(rest):
        key, quoted, bare = match.groups()
        params[key.lower()] = quoted if quoted is not None else bare
    return Challenge(scheme=scheme.lower(), params=params)


def pull_scope(repository: str) -> str:
    return f"repository:{repository}:pull"


def basic_authorization(username: str, password: str | None) -> str:
    """Value for an Authorization header using HTTP basic auth."""
    raw = f"{username}:{password or ''}".encode()
    return f"Basic {base64.b64encode(raw).decode()}"
