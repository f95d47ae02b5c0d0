"""Storage evidence sources, one per privilege tier."""

from flashwear.sources.base import StorageSource
from flashwear.sources.broker import BrokerSource
from flashwear.sources.estimated import EstimatedSource
from flashwear.sources.platform_api import PlatformApiSource
from flashwear.sources.root import RootSource

__all__ = [
    "BrokerSource",
    "EstimatedSource",
    "PlatformApiSource",
    "RootSource",
    "StorageSource",
]
