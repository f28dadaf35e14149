"""Dataset-to-resource mapping core.

Exposes:
    Mapper            -- resolve, discover, assemble and detect in one call.
    DiscoveryOptions  -- which optional resource categories to fetch.
    ResolutionError   -- the bound Runtime could not be resolved.
"""

from fluidmap.mapper.discovery import DiscoveryOptions
from fluidmap.mapper.errors import ResolutionError
from fluidmap.mapper.mapper import DEFAULT_TIMEOUT_SECONDS, Mapper

__all__ = ["DEFAULT_TIMEOUT_SECONDS", "DiscoveryOptions", "Mapper", "ResolutionError"]
