"""
Content Store - Dependency Injection Container

A small IoC container used by the composition root (``repositories.factory``
and the CLI) to hand repositories and clients to their consumers.

Features:
- Singleton, scoped and transient lifetimes
- Constructor wiring from ``__init__`` type hints
- Sync and async factories
- Ordered async disposal of owned resources

There is no process-wide container: whoever builds one owns it
and disposes it.
"""
from __future__ import annotations

import asyncio
import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Type,
    TypeVar,
    get_type_hints,
)

from observability.logging import get_logger

T = TypeVar("T")

logger = get_logger("contentstore.di")


class ServiceLifetime(Enum):
    """How long a resolved instance lives."""

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class ResolutionError(LookupError):
    """A service could not be resolved (unregistered, circular or scope-less)."""


@dataclass
class Registration(Generic[T]):
    """One entry of the registry."""

    service_type: Type[T]
    lifetime: ServiceLifetime
    implementation: Optional[Type[T]] = None
    factory: Optional[Callable[..., Any]] = None

    @property
    def is_async(self) -> bool:
        return self.factory is not None and inspect.iscoroutinefunction(self.factory)

    @property
    def name(self) -> str:
        return getattr(self.service_type, "__name__", str(self.service_type))


async def _close(instance: Any) -> None:
    for method_name in ("dispose_async", "close"):
        method = getattr(instance, method_name, None)
        if method is None:
            continue
        result = method()
        if inspect.isawaitable(result):
            await result
        return


class Scope:
    """
    Holds the scoped instances of one unit of work or request.

    Usage:
        async with container.create_scope() as scope:
            pages = await scope.resolve_async(IPageRepository)
    """

    def __init__(self, container: "Container"):
        self._container = container
        self._instances: Dict[Type, Any] = {}

    def resolve(self, service_type: Type[T]) -> T:
        return self._container.resolve(service_type, self)

    async def resolve_async(self, service_type: Type[T]) -> T:
        return await self._container.resolve_async(service_type, self)

    async def dispose_async(self) -> None:
        for instance in reversed(list(self._instances.values())):
            await _close(instance)
        self._instances.clear()


class Container:
    """
    Service registry and resolver.

    Usage:
        container = Container()
        container.register_instance(Config, config)
        container.register_factory(CouchDBClient, make_client)
        container.register_singleton(IPageRepository, CouchDBPageRepository)

        pages = container.resolve(IPageRepository)
    """

    def __init__(self) -> None:
        self._registrations: Dict[Type, Registration] = {}
        self._singletons: Dict[Type, Any] = {}
        self._owned: List[Any] = []
        self._resolving: set = set()
        self._async_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(
        self,
        service_type: Type[T],
        implementation: Optional[Type[T]] = None,
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ) -> "Container":
        self._registrations[service_type] = Registration(
            service_type=service_type,
            lifetime=lifetime,
            implementation=implementation or service_type,
        )
        self._singletons.pop(service_type, None)
        return self

    def register_singleton(
        self, service_type: Type[T], implementation: Optional[Type[T]] = None
    ) -> "Container":
        return self.register(service_type, implementation, ServiceLifetime.SINGLETON)

    def register_scoped(
        self, service_type: Type[T], implementation: Optional[Type[T]] = None
    ) -> "Container":
        return self.register(service_type, implementation, ServiceLifetime.SCOPED)

    def register_transient(
        self, service_type: Type[T], implementation: Optional[Type[T]] = None
    ) -> "Container":
        return self.register(service_type, implementation, ServiceLifetime.TRANSIENT)

    def register_instance(self, service_type: Type[T], instance: T) -> "Container":
        """Register an existing object. The container does not dispose it."""
        self._registrations[service_type] = Registration(
            service_type=service_type, lifetime=ServiceLifetime.SINGLETON
        )
        self._singletons[service_type] = instance
        return self

    def register_factory(
        self,
        service_type: Type[T],
        factory: Callable[..., Any],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ) -> "Container":
        """Register a sync or async factory; async ones need ``resolve_async``."""
        self._registrations[service_type] = Registration(
            service_type=service_type, lifetime=lifetime, factory=factory
        )
        self._singletons.pop(service_type, None)
        return self

    def is_registered(self, service_type: Type) -> bool:
        return service_type in self._registrations

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _registration(self, service_type: Type[T]) -> Registration[T]:
        try:
            return self._registrations[service_type]
        except KeyError:
            name = getattr(service_type, "__name__", str(service_type))
            raise ResolutionError(f"Service '{name}' is not registered") from None

    def _constructor_args(self, implementation: Type) -> Dict[str, Type]:
        if implementation.__init__ is object.__init__:
            return {}
        hints = get_type_hints(implementation.__init__)
        hints.pop("return", None)
        return {name: hint for name, hint in hints.items() if hint in self._registrations}

    def _cache_for(
        self, registration: Registration, scope: Optional[Scope]
    ) -> Optional[Dict[Type, Any]]:
        if registration.lifetime == ServiceLifetime.SINGLETON:
            return self._singletons
        if registration.lifetime == ServiceLifetime.SCOPED:
            if scope is None:
                raise ResolutionError(f"Scoped service '{registration.name}' requires a scope")
            return scope._instances
        return None

    def _enter(self, registration: Registration) -> None:
        if registration.service_type in self._resolving:
            raise ResolutionError(f"Circular dependency detected for {registration.name}")
        self._resolving.add(registration.service_type)

    def _track(self, registration: Registration, instance: Any) -> None:
        if registration.lifetime == ServiceLifetime.SINGLETON:
            self._owned.append(instance)

    def resolve(self, service_type: Type[T], scope: Optional[Scope] = None) -> T:
        registration = self._registration(service_type)
        cache = self._cache_for(registration, scope)
        if cache is not None and service_type in cache:
            return cache[service_type]
        if registration.is_async:
            raise ResolutionError(
                f"Service '{registration.name}' has an async factory; use resolve_async"
            )

        self._enter(registration)
        try:
            if registration.factory is not None:
                instance = registration.factory()
            else:
                args = self._constructor_args(registration.implementation)
                instance = registration.implementation(
                    **{name: self.resolve(hint, scope) for name, hint in args.items()}
                )
        finally:
            self._resolving.discard(service_type)

        if cache is not None:
            cache[service_type] = instance
        self._track(registration, instance)
        return instance

    async def resolve_async(self, service_type: Type[T], scope: Optional[Scope] = None) -> T:
        registration = self._registration(service_type)
        cache = self._cache_for(registration, scope)
        if cache is not None and service_type in cache:
            return cache[service_type]

        async with self._async_lock:
            if cache is not None and service_type in cache:
                return cache[service_type]
            instance = await self._build_async(registration, scope)
            if cache is not None:
                cache[service_type] = instance
            self._track(registration, instance)
        return instance

    async def _build_async(self, registration: Registration[T], scope: Optional[Scope]) -> T:
        self._enter(registration)
        try:
            if registration.factory is not None:
                result = registration.factory()
                if inspect.isawaitable(result):
                    result = await result
                return result
            args = self._constructor_args(registration.implementation)
            resolved = {}
            for name, hint in args.items():
                dependency = self._registration(hint)
                dep_cache = self._cache_for(dependency, scope)
                if dep_cache is not None and hint in dep_cache:
                    resolved[name] = dep_cache[hint]
                    continue
                resolved[name] = await self._build_async(dependency, scope)
                if dep_cache is not None:
                    dep_cache[hint] = resolved[name]
                self._track(dependency, resolved[name])
            return registration.implementation(**resolved)
        finally:
            self._resolving.discard(registration.service_type)

    # -------------------------------------------------------------------------
    # Scopes and disposal
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def create_scope(self) -> AsyncIterator[Scope]:
        scope = Scope(self)
        try:
            yield scope
        finally:
            await scope.dispose_async()

    async def dispose_async(self) -> None:
        """Close every singleton the container created, newest first."""
        seen = set()
        for instance in reversed(self._owned):
            if id(instance) in seen:
                continue
            seen.add(id(instance))
            await _close(instance)
        logger.debug("Container disposed", instances=len(seen))
        self._owned.clear()
        self._singletons = {
            service_type: instance
            for service_type, instance in self._singletons.items()
            if id(instance) not in seen
        }
