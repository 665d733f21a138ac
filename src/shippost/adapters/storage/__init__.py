"""Storage backends."""

from shippost.adapters.storage.memory import (
    InMemoryCommitStore,
    InMemoryDraftStore,
    InMemoryProjectRegistry,
)
from shippost.adapters.storage.yaml_store import (
    YamlCommitStore,
    YamlDraftStore,
    YamlGroupCatalog,
    YamlProjectRegistry,
)

__all__ = [
    "InMemoryCommitStore",
    "InMemoryDraftStore",
    "InMemoryProjectRegistry",
    "YamlCommitStore",
    "YamlDraftStore",
    "YamlGroupCatalog",
    "YamlProjectRegistry",
]
