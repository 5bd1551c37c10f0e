#
# This source file is part of the EdgeDB open source project.
#
# Copyright 2024-present MagicStack Inc. and the EdgeDB authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#


"""Type descriptors as negotiated with the server.

The classes below form a closed set of descriptor kinds.  Descriptors
are immutable; a tree of them describes the shape of the arguments a
query accepts or the rows it returns.  :func:`parse` decodes the binary
type descriptor stream of the 2.x protocol into such a tree.
"""


from __future__ import annotations
from typing import (
    Callable,
    ClassVar,
    Optional,
    Sequence,
)

import dataclasses
import enum
import uuid

from gelreflect import errors
from gelreflect.common import binwrapper

from . import enums
from . import scalars


PROTOCOL_VERSION = (2, 0)

NULL_TYPE_ID = uuid.UUID(bytes=b'\x00' * 16)


class DescriptorTag(bytes, enum.Enum):
    SET = b'\x00'
    SHAPE = b'\x01'
    BASE_SCALAR = b'\x02'
    SCALAR = b'\x03'
    TUPLE = b'\x04'
    NAMEDTUPLE = b'\x05'
    ARRAY = b'\x06'
    ENUM = b'\x07'
    INPUT_SHAPE = b'\x08'
    RANGE = b'\x09'
    OBJECT = b'\x0a'
    COMPOUND = b'\x0b'
    MULTIRANGE = b'\x0c'
    SQL_ROW = b'\x0d'


class ShapePointerFlags(enum.IntFlag):
    IS_IMPLICIT = enum.auto()
    IS_LINKPROP = enum.auto()
    IS_LINK = enum.auto()


class CompoundOp(enum.IntEnum):
    UNION = 1 << 0
    INTERSECTION = 1 << 1


#
# Descriptor model
#

@dataclasses.dataclass(frozen=True, kw_only=True)
class TypeDesc:
    kind: ClassVar[str]
    tid: uuid.UUID

    def children(self) -> Sequence[TypeDesc]:
        return ()


@dataclasses.dataclass(frozen=True, kw_only=True)
class NullDesc(TypeDesc):
    kind = 'null'
    tid: uuid.UUID = NULL_TYPE_ID


@dataclasses.dataclass(frozen=True, kw_only=True)
class SchemaTypeDesc(TypeDesc):
    name: Optional[str] = None
    schema_defined: Optional[bool] = None


@dataclasses.dataclass(frozen=True, kw_only=True)
class ScalarDesc(SchemaTypeDesc):
    kind = 'scalar'
    base_type: str
    imported_type: bool = False


@dataclasses.dataclass(frozen=True, kw_only=True)
class EnumDesc(ScalarDesc):
    kind = 'enum'
    values: Sequence[str]
    base_type: str = 'string'


@dataclasses.dataclass(frozen=True)
class ShapeElement:
    name: str
    cardinality: enums.Cardinality
    flags: int = 0


@dataclasses.dataclass(frozen=True, kw_only=True)
class ShapeDesc(TypeDesc):
    kind = 'object'
    elements: Sequence[ShapeElement]
    subtypes: Sequence[TypeDesc]
    # The object type the shape is projected from; None for input
    # shapes and for shapes free of any object type.
    objtype: Optional[TypeDesc] = None

    def children(self) -> Sequence[TypeDesc]:
        return self.subtypes


@dataclasses.dataclass(frozen=True, kw_only=True)
class NamedTupleDesc(SchemaTypeDesc):
    kind = 'namedtuple'
    names: Sequence[str]
    subtypes: Sequence[TypeDesc]

    def children(self) -> Sequence[TypeDesc]:
        return self.subtypes


@dataclasses.dataclass(frozen=True, kw_only=True)
class TupleDesc(SchemaTypeDesc):
    kind = 'tuple'
    subtypes: Sequence[TypeDesc]

    def children(self) -> Sequence[TypeDesc]:
        return self.subtypes


@dataclasses.dataclass(frozen=True, kw_only=True)
class ArrayDesc(SchemaTypeDesc):
    kind = 'array'
    subtype: TypeDesc
    dim_len: int = -1

    def children(self) -> Sequence[TypeDesc]:
        return (self.subtype,)


@dataclasses.dataclass(frozen=True, kw_only=True)
class RangeDesc(SchemaTypeDesc):
    kind = 'range'
    subtype: TypeDesc

    def children(self) -> Sequence[TypeDesc]:
        return (self.subtype,)


@dataclasses.dataclass(frozen=True, kw_only=True)
class MultiRangeDesc(SchemaTypeDesc):
    kind = 'multirange'
    subtype: TypeDesc

    def children(self) -> Sequence[TypeDesc]:
        return (self.subtype,)


@dataclasses.dataclass(frozen=True, kw_only=True)
class SetDesc(TypeDesc):
    kind = 'set'
    subtype: TypeDesc

    def children(self) -> Sequence[TypeDesc]:
        return (self.subtype,)


@dataclasses.dataclass(frozen=True, kw_only=True)
class ObjectTypeDesc(SchemaTypeDesc):
    kind = 'object type'


@dataclasses.dataclass(frozen=True, kw_only=True)
class CompoundTypeDesc(SchemaTypeDesc):
    kind = 'compound type'
    op: CompoundOp
    components: Sequence[TypeDesc]


@dataclasses.dataclass(frozen=True, kw_only=True)
class SQLRowDesc(TypeDesc):
    kind = 'sql row'
    names: Sequence[str]
    subtypes: Sequence[TypeDesc]

    def children(self) -> Sequence[TypeDesc]:
        return self.subtypes


NULL_DESC = NullDesc()


def format_tree(desc: TypeDesc, *, indent: int = 0) -> str:
    """Render a descriptor tree one node per line, for debug output."""
    pad = '  ' * indent
    if isinstance(desc, EnumDesc):
        line = f'{pad}{desc.kind} {desc.name} {list(desc.values)!r}'
    elif isinstance(desc, ScalarDesc):
        line = f'{pad}{desc.kind} {desc.name} -> {desc.base_type}'
    else:
        line = f'{pad}{desc.kind}'
    lines = [line]
    if isinstance(desc, ShapeDesc):
        for el, sub in zip(desc.elements, desc.subtypes):
            lines.append(f'{pad}  .{el.name} [{el.cardinality.name}]')
            lines.append(format_tree(sub, indent=indent + 2))
    else:
        for sub in desc.children():
            lines.append(format_tree(sub, indent=indent + 1))
    return '\n'.join(lines)


#
# Type descriptor parsing
#

class ParseContext:
    def __init__(
        self,
        protocol_version: tuple[int, int],
    ) -> None:
        self.protocol_version = protocol_version
        self.descs: list[TypeDesc] = []


def parse(
    typedesc: bytes,
    protocol_version: tuple[int, int] = PROTOCOL_VERSION,
) -> TypeDesc:
    """Unmarshal a byte stream with one or more type descriptors.

    The last descriptor in the stream is the root of the returned tree.
    An empty stream is the descriptor of the null type.
    """
    if protocol_version < (2, 0):
        raise errors.UnsupportedFeatureError(
            f'type descriptors of protocol '
            f'{protocol_version[0]}.{protocol_version[1]} are not supported')

    if not typedesc:
        return NULL_DESC

    ctx = ParseContext(protocol_version)
    stream = binwrapper.BinWrapper.from_bytes(typedesc)
    try:
        while not stream.at_eof():
            _parse(stream, ctx=ctx)
    except BufferError as e:
        raise errors.ProtocolError(
            f'malformed type descriptor: {e}') from e

    if not ctx.descs:
        raise errors.ProtocolError('could not parse type descriptor')
    return ctx.descs[-1]


def _parse(stream: binwrapper.BinWrapper, ctx: ParseContext) -> None:
    """Unmarshal the next type descriptor from the byte stream."""
    # .length
    length = stream.read_ui32()
    desc = binwrapper.BinWrapper.from_bytes(stream.read_bytes(length))

    t = desc.read_bytes(1)
    try:
        tag = DescriptorTag(t)
    except ValueError:
        if t[0] >= 0x80:
            # Ignore all type annotations.
            return
        raise errors.ProtocolError(
            f'no descriptor implementation for Gel data kind {hex(t[0])}'
        ) from None

    try:
        parser = _parsers[tag]
    except KeyError:
        raise errors.ProtocolError(
            f'unexpected {tag.name} descriptor in protocol '
            f'{ctx.protocol_version[0]}.{ctx.protocol_version[1]}'
        ) from None

    ctx.descs.append(parser(desc, ctx))

    if not desc.at_eof():
        raise errors.ProtocolError(
            f'malformed type descriptor: trailing data after '
            f'{tag.name} descriptor at position {stream.tell()}')


_Parser = Callable[[binwrapper.BinWrapper, ParseContext], TypeDesc]
_parsers: dict[DescriptorTag, _Parser] = {}


def _parser(tag: DescriptorTag) -> Callable[[_Parser], _Parser]:
    def wrap(func: _Parser) -> _Parser:
        assert tag not in _parsers, f'duplicate parser for {tag.name}'
        _parsers[tag] = func
        return func
    return wrap


#
# Parsing helpers
#

def _parse_bool(desc: binwrapper.BinWrapper) -> bool:
    return bool(desc.read_ui8())


def _parse_string(desc: binwrapper.BinWrapper) -> str:
    b = desc.read_len32_prefixed_bytes()
    try:
        return b.decode('utf-8')
    except UnicodeDecodeError as e:
        raise errors.ProtocolError(
            f'malformed type descriptor: invalid UTF-8 string '
            f'at position {desc.tell()}') from e


def _parse_strings(desc: binwrapper.BinWrapper) -> list[str]:
    num = desc.read_ui16()
    return [_parse_string(desc) for _ in range(num)]


def _parse_cardinality(desc: binwrapper.BinWrapper) -> enums.Cardinality:
    value = desc.read_ui8()
    try:
        return enums.Cardinality(value)
    except ValueError:
        raise errors.ProtocolError(
            f'malformed type descriptor: invalid cardinality {hex(value)}'
        ) from None


def _parse_type_ref(
    desc: binwrapper.BinWrapper,
    *,
    ctx: ParseContext,
) -> TypeDesc:
    offset = desc.read_ui16()
    try:
        return ctx.descs[offset]
    except IndexError:
        raise errors.ProtocolError(
            f'malformed type descriptor: dangling type reference: {offset}'
        ) from None


def _parse_type_refs(
    desc: binwrapper.BinWrapper,
    *,
    ctx: ParseContext,
) -> list[TypeDesc]:
    els = desc.read_ui16()
    return [_parse_type_ref(desc, ctx=ctx) for _ in range(els)]


def _parse_schema_header(
    desc: binwrapper.BinWrapper,
    *,
    ctx: ParseContext,
) -> tuple[uuid.UUID, str, bool, list[TypeDesc]]:
    # .id
    tid = desc.read_uuid()
    # .name
    name = _parse_string(desc)
    # .schema_defined
    schema_defined = _parse_bool(desc)
    # .ancestors
    ancestors = _parse_type_refs(desc, ctx=ctx)
    return tid, name, schema_defined, ancestors


#
# Parsers, one per descriptor tag
#

@_parser(DescriptorTag.SET)
def _parse_set_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> SetDesc:
    # .id
    tid = desc.read_uuid()
    # .type
    subtype = _parse_type_ref(desc, ctx=ctx)

    return SetDesc(tid=tid, subtype=subtype)


@_parser(DescriptorTag.OBJECT)
def _parse_object_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> ObjectTypeDesc:
    # .id
    tid = desc.read_uuid()
    # .name
    name = _parse_string(desc)
    # .schema_defined
    schema_defined = _parse_bool(desc)

    return ObjectTypeDesc(tid=tid, name=name, schema_defined=schema_defined)


@_parser(DescriptorTag.COMPOUND)
def _parse_compound_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> CompoundTypeDesc:
    # .id
    tid = desc.read_uuid()
    # .name
    name = _parse_string(desc)
    # .schema_defined
    schema_defined = _parse_bool(desc)
    # .op
    op_byte = desc.read_ui8()
    try:
        op = CompoundOp(op_byte)
    except ValueError:
        raise errors.ProtocolError(
            f'unexpected op in CompoundTypeDescriptor: {hex(op_byte)}'
        ) from None
    # .components
    components = _parse_type_refs(desc, ctx=ctx)

    return CompoundTypeDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        op=op,
        components=components,
    )


@_parser(DescriptorTag.SHAPE)
def _parse_shape_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> ShapeDesc:
    # .id
    tid = desc.read_uuid()

    objtype = None
    # .ephemeral_free_shape
    ephemeral_free_shape = _parse_bool(desc)
    if ephemeral_free_shape:
        desc.read_ui16()
    else:
        # .type
        objtype = _parse_type_ref(desc, ctx=ctx)

    # .element_count
    els = desc.read_ui16()
    # .elements
    elements = []
    subtypes = []
    for _ in range(els):
        # ShapeElement.flags
        flags = desc.read_ui32()
        # ShapeElement.cardinality
        cardinality = _parse_cardinality(desc)
        # ShapeElement.name
        name = _parse_string(desc)
        # ShapeElement.type
        subtype = _parse_type_ref(desc, ctx=ctx)
        # ShapeElement.source_type
        _parse_type_ref(desc, ctx=ctx)

        elements.append(ShapeElement(name, cardinality, flags))
        subtypes.append(subtype)

    return ShapeDesc(
        tid=tid,
        objtype=objtype,
        elements=elements,
        subtypes=subtypes,
    )


@_parser(DescriptorTag.INPUT_SHAPE)
def _parse_input_shape_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> ShapeDesc:
    # .id
    tid = desc.read_uuid()
    # .element_count
    els = desc.read_ui16()
    # .elements
    elements = []
    subtypes = []
    for _ in range(els):
        # ShapeElement.flags
        flags = desc.read_ui32()
        # ShapeElement.cardinality
        cardinality = _parse_cardinality(desc)
        # ShapeElement.name
        name = _parse_string(desc)
        # ShapeElement.type
        subtype = _parse_type_ref(desc, ctx=ctx)

        elements.append(ShapeElement(name, cardinality, flags))
        subtypes.append(subtype)

    return ShapeDesc(tid=tid, elements=elements, subtypes=subtypes)


@_parser(DescriptorTag.SCALAR)
def _parse_scalar_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> ScalarDesc:
    tid, name, schema_defined, ancestors = _parse_schema_header(desc, ctx=ctx)

    if ancestors:
        fundamental = ancestors[-1]
        if not isinstance(fundamental, ScalarDesc):
            raise errors.ProtocolError(
                f'malformed type descriptor: scalar {name!r} has a '
                f'non-scalar fundamental type')
        base_type = fundamental.base_type
        imported = fundamental.imported_type
    else:
        base_type, imported = scalars.resolve(name)

    return ScalarDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        base_type=base_type,
        imported_type=imported,
    )


@_parser(DescriptorTag.TUPLE)
def _parse_tuple_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> TupleDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .element_count
    # .elements
    subtypes = _parse_type_refs(desc, ctx=ctx)

    return TupleDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        subtypes=subtypes,
    )


@_parser(DescriptorTag.NAMEDTUPLE)
def _parse_namedtuple_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> NamedTupleDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .element_count
    els = desc.read_ui16()
    names = []
    subtypes = []
    for _ in range(els):
        # TupleElement.name
        names.append(_parse_string(desc))
        # TupleElement.type
        subtypes.append(_parse_type_ref(desc, ctx=ctx))

    return NamedTupleDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        names=names,
        subtypes=subtypes,
    )


@_parser(DescriptorTag.ENUM)
def _parse_enum_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> EnumDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .member_count
    # .members
    values = _parse_strings(desc)

    return EnumDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        values=values,
    )


@_parser(DescriptorTag.ARRAY)
def _parse_array_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> ArrayDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .type
    subtype = _parse_type_ref(desc, ctx=ctx)
    # .dimension_count
    els = desc.read_ui16()
    if els != 1:
        raise errors.UnsupportedFeatureError(
            'cannot handle arrays with more than one dimension')
    # .dimensions
    dim_len = desc.read_i32()
    if dim_len != -1:
        raise errors.UnsupportedFeatureError(
            'cannot handle arrays with non-infinite dimensions')

    return ArrayDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        dim_len=dim_len,
        subtype=subtype,
    )


@_parser(DescriptorTag.RANGE)
def _parse_range_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> RangeDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .type
    subtype = _parse_type_ref(desc, ctx=ctx)

    return RangeDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        subtype=subtype,
    )


@_parser(DescriptorTag.MULTIRANGE)
def _parse_multirange_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> MultiRangeDesc:
    tid, name, schema_defined, _ = _parse_schema_header(desc, ctx=ctx)

    # .type
    subtype = _parse_type_ref(desc, ctx=ctx)

    return MultiRangeDesc(
        tid=tid,
        name=name,
        schema_defined=schema_defined,
        subtype=subtype,
    )


@_parser(DescriptorTag.SQL_ROW)
def _parse_sql_row_descriptor(
    desc: binwrapper.BinWrapper,
    ctx: ParseContext,
) -> SQLRowDesc:
    # .id
    tid = desc.read_uuid()
    # .element_count
    els = desc.read_ui16()
    names = []
    subtypes = []
    for _ in range(els):
        # SQLRecordElement.name
        names.append(_parse_string(desc))
        # SQLRecordElement.type
        subtypes.append(_parse_type_ref(desc, ctx=ctx))

    return SQLRowDesc(tid=tid, names=names, subtypes=subtypes)
