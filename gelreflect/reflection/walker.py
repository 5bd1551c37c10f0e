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


"""Conversion of type descriptors into TypeScript type signatures."""


from __future__ import annotations
from typing import Sequence

import dataclasses
import functools
import json

from gelreflect import errors
from gelreflect.protocol import descriptors
from gelreflect.protocol import enums


@dataclasses.dataclass(frozen=True)
class GenerationContext:

    indent: str = ''
    # Render AT_MOST_ONE members as optional keys rather than as
    # nullable values.
    optional_nulls: bool = False
    readonly: bool = False
    # Names of the types a signature refers to that the consumer must
    # import.  Shared by every context derived from this one.
    imports: set[str] = dataclasses.field(default_factory=set)

    def deeper(self) -> GenerationContext:
        return dataclasses.replace(self, indent=self.indent + '  ')


def apply_cardinality(
    ts_type: str,
    cardinality: enums.Cardinality,
) -> str:
    if cardinality is enums.Cardinality.MANY:
        return f'{ts_type}[]'
    elif cardinality is enums.Cardinality.ONE:
        return ts_type
    elif cardinality is enums.Cardinality.AT_MOST_ONE:
        return f'{ts_type} | null'
    elif cardinality is enums.Cardinality.AT_LEAST_ONE:
        return f'[({ts_type}), ...({ts_type})[]]'
    raise errors.UnknownCardinalityError(
        f'unexpected cardinality: {cardinality}',
        cardinality=cardinality,
    )


def _kind(desc: object) -> str:
    return getattr(desc, 'kind', type(desc).__name__)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


@functools.singledispatch
def walk(
    desc: descriptors.TypeDesc,
    ctx: GenerationContext,
) -> str:
    kind = _kind(desc)
    raise errors.UnexpectedDescriptorError(
        f'unexpected descriptor kind: {kind}', kind=kind)


@walk.register(descriptors.NullDesc)
def _null(
    desc: descriptors.NullDesc,
    ctx: GenerationContext,
) -> str:
    return 'null'


@walk.register(descriptors.ScalarDesc)
def _scalar(
    desc: descriptors.ScalarDesc,
    ctx: GenerationContext,
) -> str:
    if desc.imported_type:
        ctx.imports.add(desc.base_type)
    return desc.base_type


@walk.register(descriptors.EnumDesc)
def _enum(
    desc: descriptors.EnumDesc,
    ctx: GenerationContext,
) -> str:
    return '(' + ' | '.join(_quote(v) for v in desc.values) + ')'


@walk.register(descriptors.ShapeDesc)
def _shape(
    desc: descriptors.ShapeDesc,
    ctx: GenerationContext,
) -> str:
    return _walk_elements(desc, desc.elements, desc.subtypes, ctx)


@walk.register(descriptors.NamedTupleDesc)
def _namedtuple(
    desc: descriptors.NamedTupleDesc,
    ctx: GenerationContext,
) -> str:
    elements = [
        descriptors.ShapeElement(name, enums.Cardinality.ONE)
        for name in desc.names
    ]
    return _walk_elements(desc, elements, desc.subtypes, ctx)


def _walk_elements(
    desc: descriptors.TypeDesc,
    elements: Sequence[descriptors.ShapeElement],
    subtypes: Sequence[descriptors.TypeDesc],
    ctx: GenerationContext,
) -> str:
    if len(elements) != len(subtypes):
        raise errors.DescriptorContractError(
            f'{desc.kind} descriptor has {len(elements)} elements '
            f'but {len(subtypes)} subtypes')

    inner = ctx.deeper()
    lines = []
    for el, subtype in zip(elements, subtypes):
        if isinstance(subtype, descriptors.SetDesc):
            if not el.cardinality.is_multi():
                raise errors.SetCardinalityError(
                    f'subtype of {el.name!r} is a set, but its upper '
                    f'cardinality is one ({el.cardinality})',
                    field=el.name,
                    cardinality=el.cardinality,
                )
            subtype = subtype.subtype
            if isinstance(subtype, descriptors.SetDesc):
                raise errors.NestedSetError(
                    f'subtype of {el.name!r} is a set of sets',
                    field=el.name,
                )

        sub = walk(subtype, inner)
        name = _quote(el.name)
        if (
            ctx.optional_nulls
            and el.cardinality is enums.Cardinality.AT_MOST_ONE
        ):
            lines.append(f'{inner.indent}{name}?: {sub};')
        else:
            sub = apply_cardinality(sub, el.cardinality)
            lines.append(f'{inner.indent}{name}: {sub};')

    shape = '{\n' + '\n'.join(lines) + f'\n{ctx.indent}}}'
    return f'Readonly<{shape}>' if ctx.readonly else shape


@walk.register(descriptors.ArrayDesc)
def _array(
    desc: descriptors.ArrayDesc,
    ctx: GenerationContext,
) -> str:
    prefix = 'readonly ' if ctx.readonly else ''
    return f'{prefix}{walk(desc.subtype, ctx)}[]'


@walk.register(descriptors.TupleDesc)
def _tuple(
    desc: descriptors.TupleDesc,
    ctx: GenerationContext,
) -> str:
    prefix = 'readonly ' if ctx.readonly else ''
    items = ', '.join(walk(sub, ctx) for sub in desc.subtypes)
    return f'{prefix}[{items}]'


@walk.register(descriptors.RangeDesc)
def _range(
    desc: descriptors.RangeDesc,
    ctx: GenerationContext,
) -> str:
    return _walk_range_like(desc, 'Range', ctx)


@walk.register(descriptors.MultiRangeDesc)
def _multirange(
    desc: descriptors.MultiRangeDesc,
    ctx: GenerationContext,
) -> str:
    return _walk_range_like(desc, 'MultiRange', ctx)


def _walk_range_like(
    desc: descriptors.RangeDesc | descriptors.MultiRangeDesc,
    generic: str,
    ctx: GenerationContext,
) -> str:
    subtype = desc.subtype
    if not isinstance(subtype, descriptors.ScalarDesc):
        raise errors.RangeSubtypeError(
            f'expected {desc.kind} subtype to be scalar type, '
            f'got {_kind(subtype)}',
            kind=desc.kind,
            subtype_kind=_kind(subtype),
        )
    ctx.imports.add(generic)
    return f'{generic}<{walk(subtype, ctx)}>'
