import os.path

import pytest
import objmesh
import objmesh.obj

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def read_data(name: str) -> bytes:
    with open(os.path.join(DATA_DIR, name), "rb") as file:
        return file.read()


def test_single_triangle() -> None:
    obj_file = objmesh.obj.from_bytes(read_data("triangle.obj"))

    assert len(obj_file.sub_meshes) == 1
    sub_mesh = obj_file.sub_meshes[0]
    assert sub_mesh.name == objmesh.obj.DEFAULT_OBJECT_NAME
    assert list(sub_mesh.positions) == [0, 0, 0, 1, 0, 0, 0, 1, 0]
    assert list(sub_mesh.indices) == [0, 1, 2]
    assert list(sub_mesh.face_arities) == [3]
    assert not sub_mesh.normals
    assert not sub_mesh.texcoords


def test_objects_are_indexed_locally() -> None:
    obj_file = objmesh.obj.from_bytes(read_data("two_objects.obj"))

    assert [_.name for _ in obj_file.sub_meshes] == ["first", "second"]
    assert obj_file.material_libraries == ["two_objects.mtl"]

    first, second = obj_file.sub_meshes
    assert first.vertex_count == 4
    assert list(first.indices) == [0, 1, 2, 3]
    assert list(first.face_arities) == [4]
    assert len(first.normals) == 12
    assert len(first.texcoords) == 8

    assert second.vertex_count == 3
    assert list(second.indices) == [0, 1, 2]
    assert list(second.positions) == [0, 0, 1, 1, 0, 1, 1, 1, 1]
    assert list(second.texcoords) == [0.25, 0.75] * 3
    assert list(second.normals) == [0, 1, 0] * 3


def test_repeated_references_share_a_vertex() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"v 0 0 0\nv 1 0 0\nv 1 1 0\nv 0 1 0\nf 1 2 3\nf 1 3 4\n"
    )
    sub_mesh = obj_file.sub_meshes[0]
    assert sub_mesh.vertex_count == 4
    assert list(sub_mesh.indices) == [0, 1, 2, 0, 2, 3]


def test_same_position_with_different_texcoords_is_split() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0 0\nvt 1 1\n"
        b"f 1/1 2/1 3/1\nf 1/2 3/2 2/2\n"
    )
    sub_mesh = obj_file.sub_meshes[0]
    assert sub_mesh.vertex_count == 6
    assert list(sub_mesh.indices) == [0, 1, 2, 3, 4, 5]


def test_triangulate_option_fans_polygons() -> None:
    obj_file = objmesh.obj.from_bytes(
        read_data("two_objects.obj"), objmesh.LoadOptions(triangulate=True)
    )
    first = obj_file.sub_meshes[0]
    assert list(first.indices) == [0, 1, 2, 0, 2, 3]
    assert not first.face_arities


def test_negative_indices_are_relative() -> None:
    obj_file = objmesh.obj.from_bytes(b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf -3 -2 -1\n")
    assert list(obj_file.sub_meshes[0].positions) == [0, 0, 0, 1, 0, 0, 0, 1, 0]


def test_normal_only_references() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"v 0 0 0\nv 1 0 0\nv 0 1 0\nvn 0 0 1\nf 1//1 2//1 3//1\n"
    )
    sub_mesh = obj_file.sub_meshes[0]
    assert list(sub_mesh.normals) == [0, 0, 1] * 3
    assert not sub_mesh.texcoords


def test_comments_and_line_continuations() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"# header\nv 0 0 0 # origin\nv 1 0 0\nv 0 1 0\nf 1 \\\n 2 3\n"
    )
    assert list(obj_file.sub_meshes[0].indices) == [0, 1, 2]


def test_vertex_extras_are_ignored() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"v 0 0 0 1\nv 1 0 0 1 0 0\nv 0 1 0\nvt 0.5\nf 1/1 2/1 3/1\n"
    )
    sub_mesh = obj_file.sub_meshes[0]
    assert list(sub_mesh.positions) == [0, 0, 0, 1, 0, 0, 0, 1, 0]
    assert list(sub_mesh.texcoords) == [0.5, 0.0] * 3


def test_empty_groups_are_not_emitted() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"g unused\no used\nv 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 3\ng trailing\n"
    )
    assert [_.name for _ in obj_file.sub_meshes] == ["used"]


def test_no_faces() -> None:
    obj_file = objmesh.obj.from_bytes(read_data("empty.obj"))
    assert obj_file.sub_meshes == []


@pytest.mark.parametrize(
    "data, line_number, token",
    [
        (b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n", 4, "4"),
        (b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 0 1 2\n", 4, "0"),
        (b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1/a 2 3\n", 4, "1/a"),
        (b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1/1 2 3\n", 4, "1/1"),
        (b"v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1/// 2 3\n", 4, "1///"),
        (b"v 0 0 zero\n", 1, "zero"),
        (b"# comment\n\nbogus 1 2\n", 3, "bogus"),
    ],
)
def test_parse_errors(data: bytes, line_number: int, token: str) -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(data)
    assert parse_error.value.line_number == line_number
    assert parse_error.value.token == token
    assert f"line {line_number}" in str(parse_error.value)


def test_parse_error_short_face() -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(b"v 0 0 0\nv 1 0 0\nf 1 2\n")
    assert parse_error.value.line_number == 3


def test_parse_error_wrong_component_count() -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(b"v 0 0 0\nvn 0 1\n")
    assert parse_error.value.line_number == 2
    assert "'vn'" in str(parse_error.value)


def test_parse_error_mixed_normal_references() -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(
            b"v 0 0 0\nv 1 0 0\nv 0 1 0\nvn 0 0 1\nf 1//1 2 3\n"
        )
    assert "normals" in str(parse_error.value)


def test_parse_error_invalid_utf8() -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(b"v 0 0 0\n\xff\n")
    assert "byte 8" in str(parse_error.value)


def test_single_index_is_required() -> None:
    with pytest.raises(ValueError):
        objmesh.LoadOptions(single_index=False)


def test_byte_order_mark_is_skipped() -> None:
    obj_file = objmesh.obj.from_bytes(
        b"\xef\xbb\xbfv 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 3\n"
    )
    assert list(obj_file.sub_meshes[0].positions) == [0, 0, 0, 1, 0, 0, 0, 1, 0]


def test_line_numbers_count_only_newlines() -> None:
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(b"v 0 0 0\x0c\r\nv 1\x0b0 0\r\nbogus\r\n")
    assert parse_error.value.line_number == 3
    assert parse_error.value.token == "bogus"


@pytest.mark.parametrize(
    "second_object, message",
    [
        (b"o b\nf 1 2 3\n", "object 'b' lacks normals but object 'a' has them"),
        (
            b"o b\nvt 0 0\nf 1/1/1 2/1/1 3/1/1\n",
            "object 'b' has texture coordinates but object 'a' lacks them",
        ),
    ],
)
def test_objects_disagreeing_on_attributes(second_object: bytes, message: str) -> None:
    data = b"v 0 0 0\nv 1 0 0\nv 0 1 0\nvn 0 0 1\no a\nf 1//1 2//1 3//1\n"
    with pytest.raises(objmesh.ParseError) as parse_error:
        objmesh.obj.from_bytes(data + second_object)
    assert message in str(parse_error.value)
    assert parse_error.value.line_number == data.count(b"\n") + second_object.count(
        b"\n"
    )
