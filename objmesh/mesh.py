import array
import logging
import math
import typing
from dataclasses import dataclass, field

import objmesh
from objmesh.obj import RawSubMesh

logger = logging.getLogger(__name__)

MAX_INDEX = 0xFFFFFFFF


@dataclass(frozen=True)
class Mesh:
    indices: array.array
    positions: array.array
    texcoords: typing.Optional[array.array] = field(default=None)
    normals: typing.Optional[array.array] = field(default=None)
    topology: objmesh.PrimitiveTopology = field(
        default=objmesh.PrimitiveTopology.TRIANGLE_LIST
    )

    @property
    def index_type(self) -> objmesh.IndexType:
        return objmesh.IndexType.UINT32

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // 3

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


def _check_sub_mesh(sub_mesh: RawSubMesh) -> None:
    if len(sub_mesh.positions) % 3:
        raise objmesh.InternalInconsistency(
            f"object {sub_mesh.name!r} has {len(sub_mesh.positions)} position "
            "components, not a multiple of 3"
        )
    vertex_count = sub_mesh.vertex_count
    if sub_mesh.normals and len(sub_mesh.normals) != vertex_count * 3:
        raise objmesh.InternalInconsistency(
            f"object {sub_mesh.name!r} has {len(sub_mesh.normals) // 3} normals "
            f"for {vertex_count} positions"
        )
    if sub_mesh.texcoords and len(sub_mesh.texcoords) != vertex_count * 2:
        raise objmesh.InternalInconsistency(
            f"object {sub_mesh.name!r} has {len(sub_mesh.texcoords) // 2} texture "
            f"coordinates for {vertex_count} positions"
        )
    if sub_mesh.indices and max(sub_mesh.indices) >= vertex_count:
        raise objmesh.InternalInconsistency(
            f"object {sub_mesh.name!r} references vertex {max(sub_mesh.indices)} "
            f"of {vertex_count}"
        )


def _triangulate(sub_mesh: RawSubMesh) -> typing.Iterable[int]:
    """Fan each polygon from its first vertex.

    Only correct for convex polygons; concave faces come out wrong.
    """
    if not sub_mesh.face_arities:
        if len(sub_mesh.indices) % 3:
            raise objmesh.InternalInconsistency(
                f"object {sub_mesh.name!r} has {len(sub_mesh.indices)} indices "
                "and no face arities"
            )
        return sub_mesh.indices

    if sum(sub_mesh.face_arities) != len(sub_mesh.indices):
        raise objmesh.InternalInconsistency(
            f"object {sub_mesh.name!r} face arities cover "
            f"{sum(sub_mesh.face_arities)} of {len(sub_mesh.indices)} indices"
        )

    triangles = []
    face_start = 0
    for arity in sub_mesh.face_arities:
        if arity < 3:
            raise objmesh.InternalInconsistency(
                f"object {sub_mesh.name!r} has a face with {arity} vertices"
            )
        face = sub_mesh.indices[face_start : face_start + arity]
        for i in range(1, arity - 1):
            triangles.extend((face[0], face[i], face[i + 1]))
        face_start += arity
    return triangles


def _duplicate_vertices(
    indices: array.array, positions: array.array, texcoords: array.array
) -> typing.Tuple[array.array, array.array, array.array]:
    unshared_positions = array.array("f")
    unshared_texcoords = array.array("f")
    for index in indices:
        unshared_positions.extend(positions[index * 3 : index * 3 + 3])
        if texcoords:
            unshared_texcoords.extend(texcoords[index * 2 : index * 2 + 2])
    return array.array("I", range(len(indices))), unshared_positions, unshared_texcoords


def _compute_flat_normals(positions: array.array) -> array.array:
    """One normal per triangle of an unshared vertex list.

    Zero-area triangles get a zero vector.
    """
    normals = array.array("f")
    for offset in range(0, len(positions), 9):
        x0, y0, z0, x1, y1, z1, x2, y2, z2 = positions[offset : offset + 9]
        edge_a = (x1 - x0, y1 - y0, z1 - z0)
        edge_b = (x2 - x0, y2 - y0, z2 - z0)
        normal = (
            edge_a[1] * edge_b[2] - edge_a[2] * edge_b[1],
            edge_a[2] * edge_b[0] - edge_a[0] * edge_b[2],
            edge_a[0] * edge_b[1] - edge_a[1] * edge_b[0],
        )
        magnitude = math.sqrt(sum(_ * _ for _ in normal))
        if magnitude:
            normal = tuple(_ / magnitude for _ in normal)
        normals.extend(normal * 3)
    return normals


def build(sub_meshes: typing.Sequence[RawSubMesh]) -> Mesh:
    indices = array.array("I")
    positions = array.array("f")
    normals = array.array("f")
    texcoords = array.array("f")
    index_offset = 0

    for sub_mesh in sub_meshes:
        _check_sub_mesh(sub_mesh)
        logger.debug(
            "Object %r: %d positions, %d normals, %d texcoords, %d indices, "
            "%d face arities",
            sub_mesh.name,
            sub_mesh.vertex_count,
            len(sub_mesh.normals) // 3,
            len(sub_mesh.texcoords) // 2,
            len(sub_mesh.indices),
            len(sub_mesh.face_arities),
        )

        positions.extend(sub_mesh.positions)
        normals.extend(sub_mesh.normals)
        for i in range(0, len(sub_mesh.texcoords), 2):
            texcoords.extend((sub_mesh.texcoords[i], 1.0 - sub_mesh.texcoords[i + 1]))

        if index_offset + sub_mesh.vertex_count > MAX_INDEX + 1:
            raise objmesh.IndexOverflow(index_offset + sub_mesh.vertex_count)
        indices.extend(index + index_offset for index in _triangulate(sub_mesh))
        index_offset += sub_mesh.vertex_count

    vertex_count = len(positions) // 3
    if normals and len(normals) != len(positions):
        raise objmesh.InternalInconsistency(
            f"{len(normals) // 3} normals for {vertex_count} positions; "
            "every object must supply normals or none may"
        )
    if texcoords and len(texcoords) // 2 != vertex_count:
        raise objmesh.InternalInconsistency(
            f"{len(texcoords) // 2} texture coordinates for {vertex_count} positions; "
            "every object must supply texture coordinates or none may"
        )

    if not normals and positions:
        if len(indices) > MAX_INDEX + 1:
            raise objmesh.IndexOverflow(len(indices))
        indices, positions, texcoords = _duplicate_vertices(
            indices, positions, texcoords
        )
        normals = _compute_flat_normals(positions)

    mesh = Mesh(
        indices=indices,
        positions=positions,
        texcoords=texcoords or None,
        normals=normals or None,
    )
    logger.debug(
        "Built mesh: %d vertices, %d triangles, normals %s, texcoords %s",
        mesh.vertex_count,
        mesh.triangle_count,
        "present" if mesh.normals is not None else "absent",
        "present" if mesh.texcoords is not None else "absent",
    )
    return mesh
