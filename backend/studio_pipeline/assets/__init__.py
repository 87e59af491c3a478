"""Assets and output lineage."""

from .models import AssetCategory, Asset
from .lineage import AssetLineageTracker, output_name

__all__ = [
    "AssetCategory",
    "Asset",
    "AssetLineageTracker",
    "output_name",
]
