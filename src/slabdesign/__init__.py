"""Slab Design Engine - CMS slab reference to generated interior render."""

__version__ = "0.3.0"

from slabdesign.core.config import SlabDesignConfig, load_config
from slabdesign.core.pipeline import DesignOutcome, DesignPipeline, DesignRequest

__all__ = [
    "DesignOutcome",
    "DesignPipeline",
    "DesignRequest",
    "SlabDesignConfig",
    "load_config",
]
