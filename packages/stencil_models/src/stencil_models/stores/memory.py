from typing import Any

from ..definition import ModelDefinition
from .base import DefinitionStore


class MemoryDefinitionStore(DefinitionStore):
    """Process-local store; definitions vanish with the process."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}

    async def save(self, definition: ModelDefinition) -> None:
        self._documents[definition.name] = definition.to_document()

    async def get(self, name: str) -> ModelDefinition | None:
        document = self._documents.get(name)
        return ModelDefinition.model_validate(document) if document else None

    async def all(self) -> list[ModelDefinition]:
        return [
            ModelDefinition.model_validate(self._documents[name])
            for name in sorted(self._documents)
        ]

    async def delete(self, name: str) -> bool:
        return self._documents.pop(name, None) is not None
