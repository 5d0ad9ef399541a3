"""Error hierarchy for bdesc.

Error layers:
- BdescError: Base class for all user-facing errors
- DomainError: Bad input or configuration, raised before any network activity
- ResolutionError: Anything that goes wrong while walking a bundle graph
- RegistryError: Transport, HTTP and authentication failures talking to a registry

InternalConsistencyError is not a BdescError. The CLI only reports
BdescError, so a consistency fault terminates the process with a traceback.
"""


class BdescError(Exception):
    """Base class for all bdesc errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (rejected before resolution starts)
# =============================================================================


class DomainError(BdescError):
    """Base class for input/configuration errors."""


class ConfigurationError(DomainError):
    """Invalid command or settings value."""


class InvalidReferenceError(DomainError):
    """A string could not be parsed as an image reference."""

    def __init__(self, message: str, reference: str | None = None) -> None:
        super().__init__(message, code="INVALID_REFERENCE")
        self.reference = reference


# =============================================================================
# Resolution Errors (abort the whole describe operation)
# =============================================================================


class ResolutionError(BdescError):
    """Base class for failures while resolving a bundle description."""


class NotABundleError(ResolutionError):
    """The requested root artifact is a plain image, not a bundle."""


class ArtifactNotFoundError(ResolutionError):
    """A referenced manifest does not exist in any candidate location."""


class MalformedBundleError(ResolutionError):
    """A bundle's embedded lock or metadata file is missing or invalid."""


class CycleDetectedError(ResolutionError):
    """A bundle references one of its own ancestors."""


class MaxDepthExceededError(ResolutionError):
    """Bundle nesting is deeper than the configured limit."""


# =============================================================================
# Infrastructure Errors (registry communication)
# =============================================================================


class RegistryError(ResolutionError):
    """Registry request failed (network, HTTP status, unexpected payload)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(RegistryError):
    """Registry rejected our credentials or issued no usable token."""


# =============================================================================
# Faults
# =============================================================================


class InternalConsistencyError(RuntimeError):
    """A resolved tree violates an invariant the resolver guarantees."""
