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


from __future__ import annotations

import io
import struct
import uuid


class BinWrapper:
    """A big-endian reader/writer over an io.BytesIO object.

    Reads past the end of the buffer raise BufferError; callers that
    decode untrusted input are expected to translate it.
    """

    i32 = struct.Struct('!l')

    ui32 = struct.Struct('!L')
    ui16 = struct.Struct('!H')
    ui8 = struct.Struct('!B')

    def __init__(self, buf: io.BytesIO) -> None:
        self.buf = buf

    @classmethod
    def from_bytes(cls, data: bytes) -> BinWrapper:
        return cls(io.BytesIO(data))

    def getvalue(self) -> bytes:
        return self.buf.getvalue()

    def write_ui32(self, val: int) -> None:
        self.buf.write(self.ui32.pack(val))

    def write_ui16(self, val: int) -> None:
        self.buf.write(self.ui16.pack(val))

    def write_ui8(self, val: int) -> None:
        self.buf.write(self.ui8.pack(val))

    def write_i32(self, val: int) -> None:
        self.buf.write(self.i32.pack(val))

    def write_bytes(self, val: bytes) -> None:
        self.buf.write(val)

    def write_len32_prefixed_bytes(self, val: bytes) -> None:
        self.write_ui32(len(val))
        self.buf.write(val)

    def write_str(self, val: str) -> None:
        self.write_len32_prefixed_bytes(val.encode('utf-8'))

    def write_uuid(self, val: uuid.UUID) -> None:
        self.buf.write(val.bytes)

    def read_ui32(self) -> int:
        return self.ui32.unpack(self.read_bytes(4))[0]

    def read_ui16(self) -> int:
        return self.ui16.unpack(self.read_bytes(2))[0]

    def read_ui8(self) -> int:
        return self.ui8.unpack(self.read_bytes(1))[0]

    def read_i32(self) -> int:
        return self.i32.unpack(self.read_bytes(4))[0]

    def read_bytes(self, size: int) -> bytes:
        data = self.buf.read(size)
        if len(data) != size:
            raise BufferError(
                f'cannot read bytes with len={size} at position '
                f'{self.tell() - len(data)}')
        return data

    def read_len32_prefixed_bytes(self) -> bytes:
        size = self.read_ui32()
        return self.read_bytes(size)

    def read_uuid(self) -> uuid.UUID:
        return uuid.UUID(bytes=self.read_bytes(16))

    def tell(self) -> int:
        return self.buf.tell()

    def at_eof(self) -> bool:
        return self.buf.tell() >= len(self.buf.getvalue())
