"""
In-memory reference collaborators: asset registry and access control.

The geo-binding core only depends on their narrow hooks.
"""

from registry.access import AccessControl
from registry.assets import AssetRegistry

__all__ = ["AccessControl", "AssetRegistry"]
