"""Store factory: instantiate the policy store selected in the Hydra config."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from omegaconf import DictConfig

    from rainy_day.storage.base import PolicyStore


def create_store(cfg: DictConfig) -> PolicyStore:
    """Create and return the store specified by ``cfg.storage.type``.

    Uses a lazy import so the MongoDB driver is only loaded when selected.

    Raises
    ------
    ValueError
        If the storage type is not recognised.
    """
    store_type: str = cfg.storage.type
    logger.info("Creating policy store: {type}", type=store_type)

    if store_type == "memory":
        from rainy_day.storage.memory import InMemoryPolicyStore

        return InMemoryPolicyStore()

    if store_type == "mongo":
        from rainy_day.storage.mongo import MongoPolicyStore

        return MongoPolicyStore(uri=cfg.storage.mongo_uri, database=cfg.storage.database)

    raise ValueError(
        f"Unknown storage type '{store_type}'. Expected 'memory' or 'mongo'."
    )
