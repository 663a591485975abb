"""
Adapters layer - External data sources (YAML group files).
"""

from .yaml_store import YamlGroupStore

__all__ = ["YamlGroupStore"]
