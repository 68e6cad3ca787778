from __future__ import annotations
import array
import dataclasses
import logging
import typing

import objmesh

logger = logging.getLogger(__name__)

DEFAULT_OBJECT_NAME = "unnamed_object"

_IGNORED_DIRECTIVES = frozenset(
    (
        "usemtl",
        "s",
        "l",
        "p",
        "vp",
        "cstype",
        "deg",
        "bmat",
        "step",
        "curv",
        "curv2",
        "surf",
        "parm",
        "trim",
        "hole",
        "scrv",
        "sp",
        "end",
        "con",
        "mg",
        "bevel",
        "c_interp",
        "d_interp",
        "lod",
        "maplib",
        "usemap",
        "shadow_obj",
        "trace_obj",
        "ctech",
        "stech",
    )
)

# position index, texcoord index, normal index; all zero based
FaceVertex = typing.Tuple[int, typing.Optional[int], typing.Optional[int]]


@dataclasses.dataclass(frozen=True)
class RawSubMesh:
    name: str
    positions: array.array
    normals: array.array
    texcoords: array.array
    indices: array.array
    face_arities: array.array

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // 3


@dataclasses.dataclass(frozen=True)
class ObjFile:
    sub_meshes: typing.List[RawSubMesh]
    material_libraries: typing.List[str]


class _SubMeshBuilder:
    def __init__(self, name: str, triangulate: bool):
        self.name = name
        self.triangulate = triangulate
        self.positions = array.array("f")
        self.normals = array.array("f")
        self.texcoords = array.array("f")
        self.indices = array.array("I")
        self.face_arities = array.array("I")
        self.has_texcoords: typing.Optional[bool] = None
        self.has_normals: typing.Optional[bool] = None
        self.vertex_key_to_index: typing.Dict[FaceVertex, int] = {}

    @property
    def has_faces(self) -> bool:
        return bool(self.indices)

    def _check_attribute_usage(
        self, face_vertices: typing.List[FaceVertex], line_number: int
    ) -> None:
        for _, texcoord_index, normal_index in face_vertices:
            if self.has_texcoords is None:
                self.has_texcoords = texcoord_index is not None
                self.has_normals = normal_index is not None
            if self.has_texcoords != (texcoord_index is not None):
                raise objmesh.ParseError(
                    "face vertices mix references with and without texture coordinates",
                    line_number=line_number,
                )
            if self.has_normals != (normal_index is not None):
                raise objmesh.ParseError(
                    "face vertices mix references with and without normals",
                    line_number=line_number,
                )

    def _get_vertex_index(
        self,
        face_vertex: FaceVertex,
        *,
        positions: typing.List[typing.Tuple[float, float, float]],
        texcoords: typing.List[typing.Tuple[float, float]],
        normals: typing.List[typing.Tuple[float, float, float]],
    ) -> int:
        if face_vertex in self.vertex_key_to_index:
            return self.vertex_key_to_index[face_vertex]

        position_index, texcoord_index, normal_index = face_vertex
        vertex_index = len(self.positions) // 3
        self.positions.extend(positions[position_index])
        if texcoord_index is not None:
            self.texcoords.extend(texcoords[texcoord_index])
        if normal_index is not None:
            self.normals.extend(normals[normal_index])
        self.vertex_key_to_index[face_vertex] = vertex_index
        return vertex_index

    def add_face(
        self,
        face_vertices: typing.List[FaceVertex],
        *,
        line_number: int,
        positions: typing.List[typing.Tuple[float, float, float]],
        texcoords: typing.List[typing.Tuple[float, float]],
        normals: typing.List[typing.Tuple[float, float, float]],
    ) -> None:
        self._check_attribute_usage(face_vertices, line_number)
        vertex_indices = [
            self._get_vertex_index(
                face_vertex, positions=positions, texcoords=texcoords, normals=normals
            )
            for face_vertex in face_vertices
        ]

        if self.triangulate:
            for i in range(1, len(vertex_indices) - 1):
                self.indices.extend(
                    (vertex_indices[0], vertex_indices[i], vertex_indices[i + 1])
                )
        else:
            self.indices.extend(vertex_indices)
            self.face_arities.append(len(vertex_indices))

    def build(self) -> RawSubMesh:
        logger.debug(
            "Parsed object %r: %d vertices, %d indices, %d faces",
            self.name,
            len(self.positions) // 3,
            len(self.indices),
            len(self.face_arities),
        )
        return RawSubMesh(
            name=self.name,
            positions=self.positions,
            normals=self.normals,
            texcoords=self.texcoords,
            indices=self.indices,
            face_arities=self.face_arities,
        )


def _get_lines(text: str) -> typing.Iterator[typing.Tuple[int, str]]:
    pending = ""
    pending_line_number = 0
    for line_number, line in enumerate(text.split("\n"), start=1):
        line = line.rstrip("\r").split("#", 1)[0]
        if not pending:
            pending_line_number = line_number
        stripped = line.rstrip()
        if stripped.endswith("\\"):
            pending += stripped[:-1] + " "
            continue
        yield pending_line_number, pending + line
        pending = ""

    if pending:
        yield pending_line_number, pending


def _parse_floats(
    tokens: typing.List[str],
    *,
    directive: str,
    line_number: int,
    minimum: int,
    maximum: int,
) -> typing.List[float]:
    if not minimum <= len(tokens) <= maximum:
        raise objmesh.ParseError(
            f"'{directive}' expects {minimum} to {maximum} components, got {len(tokens)}",
            line_number=line_number,
        )
    try:
        return [float(token) for token in tokens]
    except ValueError:
        bad_token = next(token for token in tokens if not _is_float(token))
        raise objmesh.ParseError(
            "malformed number", line_number=line_number, token=bad_token
        ) from None


def _is_float(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def _resolve_index(
    index_token: str, *, count: int, line_number: int, token: str
) -> int:
    try:
        index = int(index_token)
    except ValueError:
        raise objmesh.ParseError(
            "malformed face vertex", line_number=line_number, token=token
        ) from None

    if index < 0:
        index += count
    else:
        index -= 1

    if not 0 <= index < count:
        raise objmesh.ParseError(
            "face references a vertex that has not been declared",
            line_number=line_number,
            token=token,
        )
    return index


def _parse_face_vertex(
    token: str,
    *,
    line_number: int,
    position_count: int,
    texcoord_count: int,
    normal_count: int,
) -> FaceVertex:
    parts = token.split("/")
    if len(parts) > 3 or not parts[0]:
        raise objmesh.ParseError(
            "malformed face vertex", line_number=line_number, token=token
        )

    position_index = _resolve_index(
        parts[0], count=position_count, line_number=line_number, token=token
    )
    texcoord_index = None
    if len(parts) > 1 and parts[1]:
        texcoord_index = _resolve_index(
            parts[1], count=texcoord_count, line_number=line_number, token=token
        )
    normal_index = None
    if len(parts) > 2:
        if not parts[2]:
            raise objmesh.ParseError(
                "malformed face vertex", line_number=line_number, token=token
            )
        normal_index = _resolve_index(
            parts[2], count=normal_count, line_number=line_number, token=token
        )
    return position_index, texcoord_index, normal_index


def _check_file_attribute_usage(
    current: _SubMeshBuilder, sub_meshes: typing.List[RawSubMesh], *, line_number: int
) -> None:
    """Objects must agree on normals and texcoords so merged buffers stay whole."""
    if not sub_meshes:
        return
    first = sub_meshes[0]
    for attribute, expected, actual in (
        ("normals", bool(first.normals), current.has_normals),
        ("texture coordinates", bool(first.texcoords), current.has_texcoords),
    ):
        if expected != actual:
            raise objmesh.ParseError(
                f"object {current.name!r} {'lacks' if expected else 'has'} "
                f"{attribute} but object {first.name!r} "
                f"{'has' if expected else 'lacks'} them",
                line_number=line_number,
            )


def from_bytes(
    data: bytes, options: objmesh.LoadOptions = objmesh.LoadOptions()
) -> ObjFile:
    try:
        text = bytes(data).decode("utf-8-sig")
    except UnicodeDecodeError as error:
        raise objmesh.ParseError(f"invalid UTF-8 at byte {error.start}") from None

    positions: typing.List[typing.Tuple[float, float, float]] = []
    texcoords: typing.List[typing.Tuple[float, float]] = []
    normals: typing.List[typing.Tuple[float, float, float]] = []
    material_libraries: typing.List[str] = []
    sub_meshes: typing.List[RawSubMesh] = []
    current = _SubMeshBuilder(DEFAULT_OBJECT_NAME, options.triangulate)

    for line_number, line in _get_lines(text):
        tokens = line.split()
        if not tokens:
            continue
        directive, arguments = tokens[0], tokens[1:]

        if directive == "v":
            # x y z [w] or x y z r g b [a]; only xyz is kept
            values = _parse_floats(
                arguments,
                directive=directive,
                line_number=line_number,
                minimum=3,
                maximum=7,
            )
            positions.append((values[0], values[1], values[2]))
        elif directive == "vt":
            values = _parse_floats(
                arguments,
                directive=directive,
                line_number=line_number,
                minimum=1,
                maximum=3,
            )
            texcoords.append((values[0], values[1] if len(values) > 1 else 0.0))
        elif directive == "vn":
            values = _parse_floats(
                arguments,
                directive=directive,
                line_number=line_number,
                minimum=3,
                maximum=3,
            )
            normals.append((values[0], values[1], values[2]))
        elif directive == "f":
            if len(arguments) < 3:
                raise objmesh.ParseError(
                    f"face needs at least 3 vertices, got {len(arguments)}",
                    line_number=line_number,
                    token=line.strip(),
                )
            face_vertices = [
                _parse_face_vertex(
                    token,
                    line_number=line_number,
                    position_count=len(positions),
                    texcoord_count=len(texcoords),
                    normal_count=len(normals),
                )
                for token in arguments
            ]
            current.add_face(
                face_vertices,
                line_number=line_number,
                positions=positions,
                texcoords=texcoords,
                normals=normals,
            )
            _check_file_attribute_usage(
                current, sub_meshes, line_number=line_number
            )
        elif directive in ("o", "g"):
            name = " ".join(arguments) or DEFAULT_OBJECT_NAME
            if current.has_faces:
                sub_meshes.append(current.build())
                current = _SubMeshBuilder(name, options.triangulate)
            else:
                current.name = name
        elif directive == "mtllib":
            material_libraries.extend(arguments)
        elif directive not in _IGNORED_DIRECTIVES:
            raise objmesh.ParseError(
                "unknown directive", line_number=line_number, token=directive
            )

    if current.has_faces:
        sub_meshes.append(current.build())

    return ObjFile(sub_meshes=sub_meshes, material_libraries=material_libraries)
