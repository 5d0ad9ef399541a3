"""DI provider for registry infrastructure."""

from collections.abc import AsyncIterator

import httpx
from dishka import Provider, Scope, from_context, provide

from bdesc.config import Config
from bdesc.domain.bundle.port.bundle_reader import BundleReader
from bdesc.infrastructure.registry.client import RegistryClient, create_http_client
from bdesc.infrastructure.registry.reader import RegistryBundleReader


class RegistryProvider(Provider):
    config = from_context(provides=Config, scope=Scope.APP)

    @provide(scope=Scope.APP)
    async def get_http_client(self, config: Config) -> AsyncIterator[httpx.AsyncClient]:
        """One connection pool for the whole run, closed with the container."""
        async with create_http_client(config.registry) as client:
            yield client

    @provide(scope=Scope.APP)
    def get_registry_client(self, http: httpx.AsyncClient, config: Config) -> RegistryClient:
        return RegistryClient(http, config.registry)

    @provide(scope=Scope.APP, provides=BundleReader)
    def get_bundle_reader(self, client: RegistryClient) -> RegistryBundleReader:
        return RegistryBundleReader(client)
