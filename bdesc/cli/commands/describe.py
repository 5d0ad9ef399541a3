"""Describe command: print the images and bundles a bundle references."""

import asyncio
import sys
from typing import Annotated

import cyclopts
from cyclopts import Parameter
from pydantic import ValidationError

from bdesc.application.di import create_container
from bdesc.application.render.selector import select_renderer
from bdesc.cli.console import get_console
from bdesc.config import Config, configure_logging
from bdesc.domain.bundle.model.description import BundleDescription
from bdesc.domain.bundle.service.describe import DescriptionResolver
from bdesc.domain.shared.error import AuthenticationError, BdescError, ConfigurationError

app = cyclopts.App(
    name="describe",
    help="Describe the images and bundles associated with a given bundle",
)

AUTH_HINT = (
    "Pass --registry-username/--registry-password "
    "or set BDESC_REGISTRY__USERNAME and BDESC_REGISTRY__PASSWORD"
)


def load_config(
    *,
    username: str | None = None,
    password: str | None = None,
    insecure: bool | None = None,
) -> Config:
    """Load settings and apply command-line registry overrides."""
    try:
        config = Config()  # type: ignore[call-arg]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    overrides = {
        key: value
        for key, value in {"username": username, "password": password, "insecure": insecure}.items()
        if value is not None
    }
    if overrides:
        config = config.model_copy(
            update={"registry": config.registry.model_copy(update=overrides)}
        )
    return config


async def resolve_bundle(config: Config, bundle: str, concurrency: int) -> BundleDescription:
    container = create_container(config)
    try:
        resolver = await container.get(DescriptionResolver)
        return await resolver.resolve(bundle, concurrency)
    finally:
        await container.close()


@app.default
def describe(
    *,
    bundle: Annotated[str, Parameter(name=["--bundle", "-b"])],
    concurrency: int | None = None,
    output_type: Annotated[str, Parameter(name=["--output-type", "-o"])] = "text",
    registry_username: str | None = None,
    registry_password: str | None = None,
    registry_insecure: bool | None = None,
) -> None:
    """Describe a bundle.

    Example: bdesc describe -b carvel.dev/app1-bundle

    Args:
        bundle: Bundle reference, by tag or digest.
        concurrency: Maximum number of registry fetches in flight (default 5).
        output_type: Type of output, one of [text, yaml].
        registry_username: Registry username.
        registry_password: Registry password.
        registry_insecure: Use plain HTTP to talk to the registry.
    """
    console = get_console()
    try:
        # Validate flags before touching the network
        renderer = select_renderer(output_type)
        config = load_config(
            username=registry_username,
            password=registry_password,
            insecure=registry_insecure,
        )
        configure_logging(config.logging)
        description = asyncio.run(
            resolve_bundle(
                config,
                bundle,
                concurrency if concurrency is not None else config.resolver.concurrency,
            )
        )
    except AuthenticationError as e:
        console.error(e.message, hint=AUTH_HINT)
        sys.exit(1)
    except BdescError as e:
        console.error(e.message)
        sys.exit(1)

    # InternalConsistencyError propagates and ends the process with a traceback
    print(renderer(description), end="")
