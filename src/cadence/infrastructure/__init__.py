# Infrastructure Package
from .yaml_store import YamlDeckStore

__all__ = ["YamlDeckStore"]
