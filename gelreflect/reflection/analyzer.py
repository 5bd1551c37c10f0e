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
from typing import Any, Optional

import dataclasses
import logging

from gelreflect import client as _client
from gelreflect import options as _options
from gelreflect.common import debug
from gelreflect.protocol import descriptors
from gelreflect.protocol import enums

from . import walker


logger = logging.getLogger('gelreflect.reflection')


@dataclasses.dataclass(frozen=True, kw_only=True)
class QueryType:
    """TypeScript signatures of a query's arguments and result."""

    args_type: str
    result_type: str
    cardinality: enums.Cardinality
    query: str
    # Type names the signatures refer to which have to be imported
    # from the client package.
    imports: frozenset[str]

    def as_dict(self) -> dict[str, Any]:
        return {
            'args_type': self.args_type,
            'result_type': self.result_type,
            'cardinality': self.cardinality.name,
            'query': self.query,
            'imports': sorted(self.imports),
        }


async def analyze_query(
    client: _client.Client,
    query: str,
    *,
    options: Optional[_options.Options] = None,
) -> QueryType:
    cardinality, in_desc, out_desc = await parse_query(
        client, query, options=options)

    if debug.flags.walk:
        debug.header('Input descriptor')
        debug.print(descriptors.format_tree(in_desc))
        debug.header('Output descriptor')
        debug.print(descriptors.format_tree(out_desc))

    imports: set[str] = set()
    args_type = walker.walk(
        in_desc,
        walker.GenerationContext(
            optional_nulls=True,
            readonly=True,
            imports=imports,
        ),
    )
    result_type = walker.apply_cardinality(
        walker.walk(
            out_desc,
            walker.GenerationContext(
                optional_nulls=False,
                readonly=False,
                imports=imports,
            ),
        ),
        cardinality,
    )

    if debug.flags.walk:
        debug.header('Signatures')
        debug.print(f'args: {args_type}')
        debug.print(f'result: {result_type}')

    logger.debug(
        'analyzed query: cardinality=%s, imports=%s',
        cardinality.name, sorted(imports))

    return QueryType(
        args_type=args_type,
        result_type=result_type,
        cardinality=cardinality,
        query=query,
        imports=frozenset(imports),
    )


async def parse_query(
    client: _client.Client,
    query: str,
    *,
    options: Optional[_options.Options] = None,
) -> _client.ParseResult:
    """Ask the server to describe *query* over a pooled connection.

    The connection holder is acquired with *options* (the defaults when
    omitted) and the query is described within its session.
    """
    if options is None:
        options = _options.Options.defaults()
    holder = await client.pool.acquire_holder(options)
    try:
        con = await holder.get_connection()
        return await con.parse(
            query,
            output_format=enums.OutputFormat.BINARY,
            expect_cardinality=enums.Cardinality.MANY,
            session=options.session,
        )
    finally:
        await holder.release()
