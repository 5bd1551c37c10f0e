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


"""Interfaces of the negotiation collaborator and a replaying pool.

The analyzer talks to a server only through the protocols declared
here.  :class:`ReplayClient` implements them over type descriptors
captured from a server earlier, which is what offline tooling and the
test suite use.
"""


from __future__ import annotations
from typing import Mapping, Optional, Protocol

import asyncio
import dataclasses
import logging

from gelreflect import errors
from gelreflect import options as _options
from gelreflect.common import debug
from gelreflect.protocol import descriptors
from gelreflect.protocol import enums


logger = logging.getLogger('gelreflect.client')


ParseResult = tuple[
    enums.Cardinality, descriptors.TypeDesc, descriptors.TypeDesc]


class Connection(Protocol):

    async def parse(
        self,
        query: str,
        *,
        output_format: enums.OutputFormat,
        expect_cardinality: enums.Cardinality,
        session: _options.Session,
    ) -> ParseResult:
        ...


class ConnectionHolder(Protocol):

    async def get_connection(self) -> Connection:
        ...

    async def release(self) -> None:
        ...


class Pool(Protocol):

    async def acquire_holder(
        self,
        options: _options.Options,
    ) -> ConnectionHolder:
        ...


class Client(Protocol):

    @property
    def pool(self) -> Pool:
        ...


@dataclasses.dataclass(frozen=True)
class CapturedDescription:
    """Result of a past parse request, as sent by the server."""

    cardinality: enums.Cardinality
    input_typedesc: bytes = b''
    output_typedesc: bytes = b''
    protocol_version: tuple[int, int] = descriptors.PROTOCOL_VERSION


class ReplayConnection:

    def __init__(self, captures: Mapping[str, CapturedDescription]) -> None:
        self._captures = captures

    async def parse(
        self,
        query: str,
        *,
        output_format: enums.OutputFormat,
        expect_cardinality: enums.Cardinality,
        session: _options.Session,
    ) -> ParseResult:
        if output_format is not enums.OutputFormat.BINARY:
            raise errors.UnsupportedFeatureError(
                f'output format {output_format.name} is not supported '
                f'by replayed descriptions')

        try:
            captured = self._captures[query]
        except KeyError:
            raise errors.QueryNotFoundError(
                f'no captured description for query {query!r}') from None

        if (
            not expect_cardinality.is_multi()
            and captured.cardinality.is_multi()
        ):
            raise errors.ResultCardinalityMismatchError(
                f'the query has cardinality {captured.cardinality.name} '
                f'which does not match the expected cardinality '
                f'{expect_cardinality.name}')

        if debug.flags.negotiation:
            debug.header('Negotiated type descriptors')
            debug.print(f'cardinality: {captured.cardinality.name}')
            debug.print(f'module: {session.module}')
            debug.print(f'aliases: {dict(session.aliases)}')
            debug.print(f'input: {captured.input_typedesc.hex()}')
            debug.print(f'output: {captured.output_typedesc.hex()}')

        in_desc = descriptors.parse(
            captured.input_typedesc, captured.protocol_version)
        out_desc = descriptors.parse(
            captured.output_typedesc, captured.protocol_version)
        return captured.cardinality, in_desc, out_desc


class _ReplayHolder:

    def __init__(self, pool: ReplayPool, con: ReplayConnection) -> None:
        self._pool = pool
        self._con: Optional[ReplayConnection] = con

    async def get_connection(self) -> ReplayConnection:
        if self._con is None:
            raise RuntimeError('connection holder has been released')
        return self._con

    async def release(self) -> None:
        if self._con is None:
            return
        self._con = None
        self._pool._release()


class ReplayPool:

    def __init__(
        self,
        captures: Optional[Mapping[str, CapturedDescription]] = None,
        *,
        max_size: int = 1,
    ) -> None:
        if max_size < 1:
            raise ValueError('max_size must be at least 1')
        self._captures = dict(captures or {})
        self._sem = asyncio.Semaphore(max_size)
        self._in_use = 0

    @property
    def in_use(self) -> int:
        return self._in_use

    def add(self, query: str, captured: CapturedDescription) -> None:
        self._captures[query] = captured

    async def acquire_holder(
        self,
        options: _options.Options,
    ) -> _ReplayHolder:
        if options.acquire_timeout is None:
            await self._sem.acquire()
        else:
            await asyncio.wait_for(
                self._sem.acquire(), options.acquire_timeout)
        self._in_use += 1
        logger.debug('acquired replay connection (%d in use)', self._in_use)
        return _ReplayHolder(self, ReplayConnection(self._captures))

    def _release(self) -> None:
        self._in_use -= 1
        self._sem.release()
        logger.debug('released replay connection (%d in use)', self._in_use)


class ReplayClient:

    def __init__(
        self,
        captures: Optional[Mapping[str, CapturedDescription]] = None,
        *,
        max_size: int = 1,
    ) -> None:
        self._pool = ReplayPool(captures, max_size=max_size)

    @property
    def pool(self) -> ReplayPool:
        return self._pool
