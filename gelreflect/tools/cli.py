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
from typing import Optional, TextIO

import asyncio
import json
import pathlib
import re

import click

from gelreflect import client as _client
from gelreflect import errors
from gelreflect import logsetup
from gelreflect import options as _options
from gelreflect.protocol import enums
from gelreflect.reflection import analyzer
from gelreflect.reflection import codegen


@click.group(
    context_settings=dict(help_option_names=['-h', '--help']))
@click.option(
    '-l', '--log-level',
    envvar='GEL_REFLECT_LOG_LEVEL',
    default='w',
    type=click.Choice(
        ['debug', 'd', 'info', 'i', 'warn', 'w',
         'error', 'e', 'silent', 's'],
        case_sensitive=False,
    ),
    help=(
        'Logging level.  Possible values: (d)ebug, (i)nfo, (w)arn, '
        '(e)rror, (s)ilent'
    ))
@click.option(
    '--log-to',
    help=('send logs to DEST, where DEST can be a file name or "stderr"'),
    type=str, metavar='DEST', default='stderr')
def reflectcommands(log_level: str, log_to: str):
    logsetup.setup_logging(log_level, log_to)


def _read_typedesc(path: Optional[pathlib.Path], is_hex: bool) -> bytes:
    if path is None:
        return b''
    data = path.read_bytes()
    if not is_hex:
        return data
    try:
        return bytes.fromhex(data.decode('ascii'))
    except (UnicodeDecodeError, ValueError) as e:
        raise click.BadParameter(
            f'{str(path)!r} does not contain a hex-encoded type descriptor'
        ) from e


def _function_name(filename: str) -> str:
    stem = pathlib.PurePath(filename).name.split('.')[0]
    words = [w for w in re.split(r'[^A-Za-z0-9]+', stem) if w]
    if not words:
        return 'query'
    name = words[0].lower() + ''.join(w.capitalize() for w in words[1:])
    if name[0].isdigit():
        name = f'q{name}'
    elif name in codegen.RESERVED_WORDS:
        name = f'{name}Query'
    return name


def _parse_aliases(ctx, param, values: tuple[str, ...]) -> dict[str, str]:
    aliases = {}
    for value in values:
        alias, sep, module = value.partition('=')
        if not sep or not alias or not module:
            raise click.BadParameter(
                f'{value!r} is not in the NAME=MODULE form')
        aliases[alias] = module
    return aliases


@reflectcommands.command()
@click.argument('query_file', type=click.File('rt'))
@click.option(
    '--input-desc', type=click.Path(
        exists=True, dir_okay=False, path_type=pathlib.Path),
    help='file with the captured type descriptor of the query arguments; '
         'the query takes no arguments if omitted')
@click.option(
    '--output-desc', required=True, type=click.Path(
        exists=True, dir_okay=False, path_type=pathlib.Path),
    help='file with the captured type descriptor of the query result')
@click.option(
    '--cardinality', required=True,
    type=click.Choice([c.name for c in enums.Cardinality
                       if c is not enums.Cardinality.NO_RESULT],
                      case_sensitive=False),
    help='result cardinality reported by the server')
@click.option(
    '--hex', 'is_hex', is_flag=True,
    help='descriptor files are hex-encoded rather than binary')
@click.option(
    '--format', 'fmt', type=click.Choice(['json', 'ts']), default='json',
    help='print the analysis as JSON or as a TypeScript module')
@click.option(
    '--name', type=str, default=None,
    help='name of the generated query function; derived from '
         'QUERY_FILE by default')
@click.option(
    '--package', envvar='GEL_REFLECT_PACKAGE', default='gel',
    help='package the generated module imports client types from')
@click.option(
    '--module', default=_options.DEFAULT_MODULE,
    help='module unqualified names in the query resolve to')
@click.option(
    '--alias', 'aliases', multiple=True, callback=_parse_aliases,
    metavar='NAME=MODULE',
    help='module alias in effect for the query; can be repeated')
def analyze(
    query_file: TextIO,
    input_desc: Optional[pathlib.Path],
    output_desc: pathlib.Path,
    cardinality: str,
    is_hex: bool,
    fmt: str,
    name: Optional[str],
    package: str,
    module: str,
    aliases: dict[str, str],
):
    """Print the TypeScript types of a query from captured descriptors."""
    query = query_file.read()
    captured = _client.CapturedDescription(
        cardinality=enums.Cardinality[cardinality.upper()],
        input_typedesc=_read_typedesc(input_desc, is_hex),
        output_typedesc=_read_typedesc(output_desc, is_hex),
    )
    client = _client.ReplayClient({query: captured})
    session = _options.Session.defaults().with_module(module)
    if aliases:
        session = session.with_aliases(aliases)
    opts = _options.Options.defaults().with_session(session)

    try:
        qtype = asyncio.run(
            analyzer.analyze_query(client, query, options=opts))
    except errors.ReflectionError as e:
        raise click.ClickException(f'{type(e).__name__}: {e}') from e

    if fmt == 'json':
        click.echo(json.dumps(qtype.as_dict(), indent=2))
        return

    if name is None:
        name = _function_name(query_file.name)
    try:
        source = codegen.generate_module(name, qtype, package=package)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--name') from e
    except errors.ReflectionError as e:
        raise click.ClickException(f'{type(e).__name__}: {e}') from e
    click.echo(source, nl=False)


def main():
    reflectcommands()
