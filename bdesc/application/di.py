from dishka import AsyncContainer, make_async_container

from bdesc.config import Config
from bdesc.domain.bundle.util.di import BundleProvider
from bdesc.infrastructure.registry.di import RegistryProvider


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    return make_async_container(
        RegistryProvider(),
        BundleProvider(),
        context={Config: config},
    )
