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


"""Construction of binary type descriptor streams for tests."""


from __future__ import annotations
from typing import Callable, Iterable, Optional, Sequence

import io
import uuid

from gelreflect.common import binwrapper
from gelreflect.protocol import descriptors
from gelreflect.protocol import enums


Tag = descriptors.DescriptorTag


class DescriptorBuilder:
    """Writes descriptors in the order they are added.

    Every method returns the position of the new descriptor, which is
    how later descriptors refer to it.
    """

    def __init__(self) -> None:
        self._chunks: list[bytes] = []
        self._count = 0

    def getvalue(self) -> bytes:
        return b''.join(self._chunks)

    def _tid(self) -> uuid.UUID:
        return uuid.UUID(int=len(self._chunks) + 1)

    def _emit(
        self,
        tag: bytes,
        write: Callable[[binwrapper.BinWrapper], None],
    ) -> int:
        body = binwrapper.BinWrapper(io.BytesIO())
        body.write_bytes(tag)
        write(body)
        self.raw(body.getvalue())
        self._count += 1
        return self._count - 1

    def raw(self, data: bytes) -> None:
        """Append a length-prefixed descriptor without registering it."""
        out = binwrapper.BinWrapper(io.BytesIO())
        out.write_len32_prefixed_bytes(data)
        self._chunks.append(out.getvalue())

    def _header(
        self,
        buf: binwrapper.BinWrapper,
        name: str,
        ancestors: Sequence[int] = (),
    ) -> None:
        buf.write_uuid(self._tid())
        buf.write_str(name)
        buf.write_ui8(0)
        _write_refs(buf, ancestors)

    def annotation(self, text: str) -> None:
        out = binwrapper.BinWrapper(io.BytesIO())
        out.write_bytes(b'\xff')
        out.write_uuid(self._tid())
        out.write_str(text)
        self.raw(out.getvalue())

    def scalar(self, name: str, *, ancestors: Sequence[int] = ()) -> int:
        return self._emit(
            Tag.SCALAR.value,
            lambda buf: self._header(buf, name, ancestors))

    def enum(self, name: str, values: Sequence[str]) -> int:
        def write(buf):
            self._header(buf, name)
            buf.write_ui16(len(values))
            for v in values:
                buf.write_str(v)
        return self._emit(Tag.ENUM.value, write)

    def array(self, subtype: int, *, dimensions: Sequence[int] = (-1,)) -> int:
        def write(buf):
            self._header(buf, '')
            buf.write_ui16(subtype)
            buf.write_ui16(len(dimensions))
            for dim in dimensions:
                buf.write_i32(dim)
        return self._emit(Tag.ARRAY.value, write)

    def tuple(self, *subtypes: int) -> int:
        def write(buf):
            self._header(buf, '')
            _write_refs(buf, subtypes)
        return self._emit(Tag.TUPLE.value, write)

    def namedtuple(self, elements: Iterable[tuple[str, int]]) -> int:
        elements = list(elements)

        def write(buf):
            self._header(buf, '')
            buf.write_ui16(len(elements))
            for name, ref in elements:
                buf.write_str(name)
                buf.write_ui16(ref)
        return self._emit(Tag.NAMEDTUPLE.value, write)

    def range(self, subtype: int) -> int:
        return self._emit(Tag.RANGE.value, self._wrapper(subtype))

    def multirange(self, subtype: int) -> int:
        return self._emit(Tag.MULTIRANGE.value, self._wrapper(subtype))

    def _wrapper(
        self,
        subtype: int,
    ) -> Callable[[binwrapper.BinWrapper], None]:
        def write(buf):
            self._header(buf, '')
            buf.write_ui16(subtype)
        return write

    def set(self, subtype: int) -> int:
        def write(buf):
            buf.write_uuid(self._tid())
            buf.write_ui16(subtype)
        return self._emit(Tag.SET.value, write)

    def object_type(self, name: str) -> int:
        def write(buf):
            buf.write_uuid(self._tid())
            buf.write_str(name)
            buf.write_ui8(1)
        return self._emit(Tag.OBJECT.value, write)

    def compound(self, name: str, op: int, components: Sequence[int]) -> int:
        def write(buf):
            buf.write_uuid(self._tid())
            buf.write_str(name)
            buf.write_ui8(1)
            buf.write_ui8(op)
            _write_refs(buf, components)
        return self._emit(Tag.COMPOUND.value, write)

    def shape(
        self,
        elements: Iterable[tuple[str, enums.Cardinality, int]],
        *,
        objtype: Optional[int] = None,
        flags: int = 0,
    ) -> int:
        elements = list(elements)

        def write(buf):
            buf.write_uuid(self._tid())
            if objtype is None:
                buf.write_ui8(1)
                buf.write_ui16(0)
            else:
                buf.write_ui8(0)
                buf.write_ui16(objtype)
            buf.write_ui16(len(elements))
            for name, card, ref in elements:
                buf.write_ui32(flags)
                buf.write_ui8(card.value)
                buf.write_str(name)
                buf.write_ui16(ref)
                buf.write_ui16(ref if objtype is None else objtype)
        return self._emit(Tag.SHAPE.value, write)

    def input_shape(
        self,
        elements: Iterable[tuple[str, enums.Cardinality, int]],
    ) -> int:
        elements = list(elements)

        def write(buf):
            buf.write_uuid(self._tid())
            buf.write_ui16(len(elements))
            for name, card, ref in elements:
                buf.write_ui32(0)
                buf.write_ui8(card.value)
                buf.write_str(name)
                buf.write_ui16(ref)
        return self._emit(Tag.INPUT_SHAPE.value, write)

    def sql_row(self, elements: Iterable[tuple[str, int]]) -> int:
        elements = list(elements)

        def write(buf):
            buf.write_uuid(self._tid())
            buf.write_ui16(len(elements))
            for name, ref in elements:
                buf.write_str(name)
                buf.write_ui16(ref)
        return self._emit(Tag.SQL_ROW.value, write)


def _write_refs(buf: binwrapper.BinWrapper, refs: Sequence[int]) -> None:
    buf.write_ui16(len(refs))
    for ref in refs:
        buf.write_ui16(ref)
