"""
Tests for di/container.py.
"""
import pytest

from di.container import Container, ResolutionError, ServiceLifetime


class Settings:
    def __init__(self):
        self.database = "cms"


class Client:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.closed = False

    async def close(self):
        self.closed = True


class PageStore:
    def __init__(self, client: Client, page_size: int = 20):
        self.client = client
        self.page_size = page_size


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


class TestRegistration:

    def test_is_registered(self):
        container = Container().register_singleton(Settings)

        assert container.is_registered(Settings)
        assert not container.is_registered(Client)

    def test_unregistered(self):
        with pytest.raises(ResolutionError, match="not registered"):
            Container().resolve(Settings)


class TestResolution:

    def test_constructor_wiring(self):
        container = Container()
        container.register_singleton(Settings)
        container.register_singleton(Client)
        container.register_transient(PageStore)

        store = container.resolve(PageStore)

        assert store.client is container.resolve(Client)
        assert store.client.settings.database == "cms"
        assert store.page_size == 20

    def test_transient_is_new_each_time(self):
        container = Container().register_transient(Settings)

        assert container.resolve(Settings) is not container.resolve(Settings)

    def test_instance(self):
        settings = Settings()
        container = Container().register_instance(Settings, settings)

        assert container.resolve(Settings) is settings

    def test_factory(self):
        container = Container().register_factory(Settings, lambda: Settings())

        assert container.resolve(Settings) is container.resolve(Settings)

    def test_circular_dependency(self):
        container = Container()
        container.register_singleton(Chicken)
        container.register_singleton(Egg)

        with pytest.raises(ResolutionError, match="Circular"):
            container.resolve(Chicken)

    def test_async_factory_needs_resolve_async(self):
        async def make():
            return Settings()

        container = Container().register_factory(Settings, make)

        with pytest.raises(ResolutionError, match="resolve_async"):
            container.resolve(Settings)

    @pytest.mark.asyncio
    async def test_resolve_async(self):
        async def make():
            return Settings()

        container = Container()
        container.register_factory(Settings, make)
        container.register_singleton(Client)

        client = await container.resolve_async(Client)

        assert isinstance(client.settings, Settings)
        assert await container.resolve_async(Client) is client
        assert await container.resolve_async(Settings) is client.settings


class TestScopes:

    def test_scoped_needs_scope(self):
        container = Container().register_scoped(Settings)

        with pytest.raises(ResolutionError, match="requires a scope"):
            container.resolve(Settings)

    @pytest.mark.asyncio
    async def test_scoped_instances_are_disposed(self):
        container = Container()
        container.register_singleton(Settings)
        container.register_scoped(Client)

        async with container.create_scope() as scope:
            client = scope.resolve(Client)
            assert scope.resolve(Client) is client

        async with container.create_scope() as other:
            assert other.resolve(Client) is not client

        assert client.closed


class TestDisposal:

    @pytest.mark.asyncio
    async def test_owned_singletons_are_closed(self):
        container = Container()
        container.register_singleton(Settings)
        container.register_singleton(Client)
        client = container.resolve(Client)

        await container.dispose_async()

        assert client.closed
        assert container.resolve(Client) is not client

    @pytest.mark.asyncio
    async def test_instances_are_not_owned(self):
        client = Client(Settings())
        container = Container().register_instance(Client, client)

        await container.dispose_async()

        assert not client.closed
        assert container.resolve(Client) is client

    def test_lifetime_values(self):
        assert ServiceLifetime("scoped") == ServiceLifetime.SCOPED
