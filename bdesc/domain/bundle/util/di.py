from dishka import Provider, Scope, provide

from bdesc.config import Config
from bdesc.domain.bundle.port.bundle_reader import BundleReader
from bdesc.domain.bundle.service.describe import DescriptionResolver


class BundleProvider(Provider):
    @provide(scope=Scope.APP)
    def get_resolver(self, reader: BundleReader, config: Config) -> DescriptionResolver:
        return DescriptionResolver(reader=reader, max_depth=config.resolver.max_depth)
