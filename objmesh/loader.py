import asyncio
import logging
import os.path
import typing

import objmesh
import objmesh.mesh
import objmesh.obj

logger = logging.getLogger(__name__)

EXTENSIONS: typing.Tuple[str, ...] = ("obj",)


class AsyncReader(typing.Protocol):
    async def read(self) -> bytes:
        ...


class AssetLoader(typing.Protocol):
    def extensions(self) -> typing.Tuple[str, ...]:
        ...

    async def load(self, reader: AsyncReader) -> typing.Any:
        ...


def load_obj_from_bytes(
    data: bytes, options: objmesh.LoadOptions = objmesh.LoadOptions()
) -> objmesh.mesh.Mesh:
    obj_file = objmesh.obj.from_bytes(data, options)
    return objmesh.mesh.build(obj_file.sub_meshes)


def _read_file_bytes(path: str) -> bytes:
    with open(path, "rb") as file:
        return file.read()


class ObjLoader:
    def __init__(self, options: objmesh.LoadOptions = objmesh.LoadOptions()):
        self.options = options

    def extensions(self) -> typing.Tuple[str, ...]:
        return EXTENSIONS

    async def load(self, reader: AsyncReader) -> objmesh.mesh.Mesh:
        try:
            data = await reader.read()
        except OSError as error:
            raise objmesh.IoError(f"failed to read OBJ data: {error}") from error
        logger.debug("Read %d bytes", len(data))
        return load_obj_from_bytes(data, self.options)

    async def load_path(self, path: str) -> objmesh.mesh.Mesh:
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, _read_file_bytes, path)
        except OSError as error:
            raise objmesh.IoError(f"failed to read {path}: {error}") from error
        logger.debug("Read %d bytes from %s", len(data), path)
        return load_obj_from_bytes(data, self.options)


class LoaderRegistry:
    """Maps file extensions to the loader that owns them."""

    def __init__(self):
        self.extension_to_loader: typing.Dict[str, AssetLoader] = {}

    def register(self, loader: AssetLoader) -> None:
        for extension in loader.extensions():
            self.extension_to_loader[extension.lower()] = loader

    def extensions(self) -> typing.List[str]:
        return sorted(self.extension_to_loader)

    def loader_for_path(self, path: str) -> AssetLoader:
        extension = os.path.splitext(path)[1].lstrip(".").lower()
        if extension not in self.extension_to_loader:
            raise KeyError(f"no loader registered for {path!r}")
        return self.extension_to_loader[extension]


def register_obj_loader(
    registry: LoaderRegistry, options: objmesh.LoadOptions = objmesh.LoadOptions()
) -> ObjLoader:
    loader = ObjLoader(options)
    registry.register(loader)
    return loader
