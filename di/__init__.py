"""
Content Store - Dependency Injection Module

IoC container used by the composition root to hand clients and repositories
to their consumers. Singleton, scoped and transient lifetimes, constructor
wiring from type hints, async factories and ordered disposal.

Usage:
    from di import Container
    from repositories.factory import bootstrap

    container = Container()
    repos = await bootstrap(config, container)
    pages = container.resolve(IPageRepository)
"""
from di.container import (
    Container,
    Registration,
    ResolutionError,
    Scope,
    ServiceLifetime,
)

__all__ = [
    "Container",
    "Registration",
    "ResolutionError",
    "Scope",
    "ServiceLifetime",
]
