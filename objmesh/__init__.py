import dataclasses
from enum import Enum
import typing


class PrimitiveTopology(Enum):
    TRIANGLE_LIST = 0


class IndexType(Enum):
    UINT32 = 4


@dataclasses.dataclass(frozen=True)
class LoadOptions:
    single_index: bool = True
    triangulate: bool = False

    def __post_init__(self) -> None:
        if not self.single_index:
            raise ValueError("only single-index vertex data is supported")


class LoaderError(Exception):
    pass


class IoError(LoaderError):
    pass


class ParseError(LoaderError):
    def __init__(
        self,
        message: str,
        *,
        line_number: typing.Optional[int] = None,
        token: typing.Optional[str] = None,
    ):
        self.message = message
        self.line_number = line_number
        self.token = token
        location = "" if line_number is None else f"line {line_number}: "
        detail = "" if token is None else f" ({token!r})"
        super().__init__(f"{location}{message}{detail}")


class IndexOverflow(LoaderError):
    def __init__(self, vertex_count: int):
        self.vertex_count = vertex_count
        super().__init__(
            f"{vertex_count} vertices cannot be addressed by 32-bit indices"
        )


class InternalInconsistency(LoaderError):
    pass
