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


"""Rendering of analyzed queries as TypeScript modules."""


from __future__ import annotations
from typing import List, Optional

import contextlib
import re
import textwrap

from gelreflect import errors
from gelreflect.protocol import enums

from . import analyzer


_IDENT_RE = re.compile(r'^[A-Za-z_$][A-Za-z0-9_$]*$')

# Words a function declaration cannot be named after in strict-mode
# TypeScript modules.
RESERVED_WORDS = frozenset({
    'arguments', 'await', 'break', 'case', 'catch', 'class', 'const',
    'continue', 'debugger', 'default', 'delete', 'do', 'else', 'enum',
    'eval', 'export', 'extends', 'false', 'finally', 'for', 'function',
    'if', 'implements', 'import', 'in', 'instanceof', 'interface', 'let',
    'new', 'null', 'package', 'private', 'protected', 'public', 'return',
    'static', 'super', 'switch', 'this', 'throw', 'true', 'try', 'typeof',
    'var', 'void', 'while', 'with', 'yield',
})

# Argument signatures of queries that take no parameters.
_NO_ARGS = frozenset({'null', '[]', 'readonly []'})

_QUERY_METHODS = {
    enums.Cardinality.ONE: 'queryRequiredSingle',
    enums.Cardinality.AT_MOST_ONE: 'querySingle',
    enums.Cardinality.MANY: 'query',
    enums.Cardinality.AT_LEAST_ONE: 'query',
}


class RenderBuffer:

    ilevel: int
    buf: List[str]

    def __init__(self):
        self.ilevel = 0
        self.buf = []

    def write(self, text: str, *, reindent: bool = True) -> None:
        pad = ' ' * (self.ilevel * 2)
        if not reindent:
            # Continuation lines belong to a string literal.
            self.buf.append(pad + text)
            return
        for line in text.split('\n'):
            self.buf.append(pad + line if line else line)

    def newline(self) -> None:
        self.buf.append('')

    def write_comment(self, comment: str) -> None:
        for line in textwrap.wrap(comment, width=76):
            self.write(f'// {line}')

    def __str__(self):
        return '\n'.join(self.buf) + '\n'

    @contextlib.contextmanager
    def indent(self):
        self.ilevel += 1
        try:
            yield
        finally:
            self.ilevel -= 1


def _template_literal(text: str) -> str:
    text = text.replace('\\', '\\\\')
    text = text.replace('`', '\\`')
    text = text.replace('${', '\\${')
    return f'`{text}`'


def _quote(s: str) -> str:
    return '"' + s.replace('\\', '\\\\').replace('"', '\\"') + '"'


def generate_module(
    name: str,
    qtype: analyzer.QueryType,
    *,
    package: str = 'gel',
    comment: Optional[str] = None,
) -> str:
    if not _IDENT_RE.match(name):
        raise ValueError(f'{name!r} is not a valid function name')
    if name in RESERVED_WORDS:
        raise ValueError(
            f'{name!r} is a reserved word and not a valid function name')

    try:
        method = _QUERY_METHODS[qtype.cardinality]
    except KeyError:
        raise errors.UnknownCardinalityError(
            f'cannot generate a query function for cardinality '
            f'{qtype.cardinality}',
            cardinality=qtype.cardinality,
        ) from None

    type_prefix = name[0].upper() + name[1:]
    args_name = f'{type_prefix}Args'
    returns_name = f'{type_prefix}Returns'
    has_args = qtype.args_type not in _NO_ARGS

    buf = RenderBuffer()
    buf.write_comment('GENERATED by gel-reflect, DO NOT EDIT.')
    if comment:
        buf.write_comment(comment)
    buf.newline()

    imports = ', '.join(['Executor', *sorted(qtype.imports)])
    buf.write(f'import type {{{imports}}} from {_quote(package)};')
    buf.newline()

    if has_args:
        buf.write(f'export type {args_name} = {qtype.args_type};')
        buf.newline()
    buf.write(f'export type {returns_name} = {qtype.result_type};')
    buf.newline()

    params = ['client: Executor']
    if has_args:
        params.append(f'args: {args_name}')
    call_args = [_template_literal(qtype.query)]
    if has_args:
        call_args.append('args')

    buf.write(
        f'export function {name}({", ".join(params)}): '
        f'Promise<{returns_name}> {{')
    with buf.indent():
        buf.write(f'return client.{method}({", ".join(call_args)});',
                  reindent=False)
    buf.write('}')

    return str(buf)

