# Infrastructure Adapters Package
from .memory_store import InMemoryStore
from .sql_store import SqlStore
from .yaml_thresholds import YamlThresholdRepository, load_thresholds_file

__all__ = ["InMemoryStore", "SqlStore", "YamlThresholdRepository", "load_thresholds_file"]
