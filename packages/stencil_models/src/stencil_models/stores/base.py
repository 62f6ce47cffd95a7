from abc import ABC, abstractmethod

from ..definition import ModelDefinition


class DefinitionStore(ABC):
    """Durable home of published model definitions, keyed by name."""

    async def initialize(self) -> None:
        """Prepare backing storage; called once at startup."""

    @abstractmethod
    async def save(self, definition: ModelDefinition) -> None:
        """Insert or replace the definition stored under ``definition.name``."""

    @abstractmethod
    async def get(self, name: str) -> ModelDefinition | None: ...

    @abstractmethod
    async def all(self) -> list[ModelDefinition]:
        """Every readable definition, sorted by name.

        Entries that fail to parse are skipped with a warning.
        """

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """Remove a definition; False when nothing was stored under ``name``."""
