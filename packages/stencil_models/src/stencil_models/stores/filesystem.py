import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from stencil_core import ValidationError

from ..definition import ModelDefinition, is_valid_name
from .base import DefinitionStore

logger = logging.getLogger(__name__)


class FileSystemDefinitionStore(DefinitionStore):
    """
    One pretty-printed ``<name>.json`` document per definition.

    File I/O runs in worker threads so the event loop is never blocked.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        if not is_valid_name(name):
            raise ValidationError("Invalid model name format.")
        return self.directory / f"{name}.json"

    async def initialize(self) -> None:
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)

    async def save(self, definition: ModelDefinition) -> None:
        path = self._path(definition.name)
        content = json.dumps(definition.to_document(), indent=2)
        await asyncio.to_thread(self._write, path, content)
        logger.debug("Wrote definition %s to %s", definition.name, path)

    def _write(self, path: Path, content: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)

    async def get(self, name: str) -> ModelDefinition | None:
        path = self._path(name)
        return await asyncio.to_thread(self._read, path)

    def _read(self, path: Path) -> ModelDefinition | None:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable definition %s: %s", path.name, exc)
            return None
        try:
            return ModelDefinition.model_validate(json.loads(content))
        except (ValueError, PydanticValidationError) as exc:
            logger.warning("Skipping unreadable definition %s: %s", path.name, exc)
            return None

    async def all(self) -> list[ModelDefinition]:
        return await asyncio.to_thread(self._read_all)

    def _read_all(self) -> list[ModelDefinition]:
        if not self.directory.is_dir():
            return []
        definitions = [
            definition
            for path in sorted(self.directory.glob("*.json"))
            if (definition := self._read(path)) is not None
        ]
        return sorted(definitions, key=lambda d: d.name)

    async def delete(self, name: str) -> bool:
        path = self._path(name)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        return True
