"""Tasks module: catalog, instances, lifecycle and progression."""

from flourish.modules.tasks import analytics, catalog, engine, state_machine, store


__all__ = [
    "analytics",
    "catalog",
    "engine",
    "state_machine",
    "store",
]
