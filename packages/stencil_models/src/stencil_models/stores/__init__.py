from .base import DefinitionStore
from .filesystem import FileSystemDefinitionStore
from .memory import MemoryDefinitionStore
from .sql_alchemy import SQLAlchemyDefinitionStore, StoredDefinition

__all__ = [
    "DefinitionStore",
    "FileSystemDefinitionStore",
    "MemoryDefinitionStore",
    "SQLAlchemyDefinitionStore",
    "StoredDefinition",
]
