"""
Router Catalog: which routers the looking glass can run commands on.

Document shape (YAML, or the front-end's config.json which is valid YAML):

  routers:
    tokyo1:
      name: tokyo1
      description: "Tokyo, JP (AS63806)"

Loaded once and treated as read-only afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx
import yaml

from errors import MalformedPayloadError, UnknownRouterError, UpstreamHTTPError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouterInfo:
    key: str
    name: str
    description: str = ""


@dataclass
class RouterCatalog:
    routers: dict[str, RouterInfo] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict | None) -> "RouterCatalog":
        catalog = cls()
        if not raw:
            return catalog
        routers = raw.get("routers") or {}
        if not isinstance(routers, dict):
            raise MalformedPayloadError("Router catalog: 'routers' must be a mapping")
        for key, data in routers.items():
            data = data or {}
            catalog.routers[str(key)] = RouterInfo(
                key=str(key),
                name=str(data.get("name", key)),
                description=str(data.get("description", "")),
            )
        return catalog

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RouterCatalog":
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f))

    def get(self, key: str) -> Optional[RouterInfo]:
        return self.routers.get(key)

    def keys(self) -> list[str]:
        return list(self.routers.keys())

    def select(self, key: Optional[str] = None) -> str:
        """Validate an explicit router key, or default to the first catalog entry."""
        if key:
            if key not in self.routers:
                raise UnknownRouterError(key)
            return key
        if not self.routers:
            raise UnknownRouterError("(none configured)")
        return next(iter(self.routers))


def load_catalog(path: str | Path) -> RouterCatalog:
    """Load the catalog from disk; a missing or broken file gives an empty catalog."""
    try:
        catalog = RouterCatalog.from_yaml(path)
    except (OSError, yaml.YAMLError, MalformedPayloadError) as e:
        logger.warning("Could not load router catalog %s: %s", path, e)
        return RouterCatalog()
    logger.info("Loaded %d routers from %s", len(catalog.routers), path)
    return catalog


async def fetch_catalog(
    url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None
) -> RouterCatalog:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.get(url)
    if not response.is_success:
        raise UpstreamHTTPError(response.status_code, url)
    return RouterCatalog.from_dict(response.json())
