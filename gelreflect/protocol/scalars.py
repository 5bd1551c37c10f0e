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


"""Mapping of server scalar types to TypeScript base types."""


from __future__ import annotations

from typing import NamedTuple

from gelreflect import errors


class ScalarType(NamedTuple):

    base_type: str
    # The type is provided by the client package and must be
    # imported by any module that mentions it.
    imported: bool = False


KNOWN_SCALARS: dict[str, ScalarType] = {
    'std::uuid': ScalarType('string'),
    'std::str': ScalarType('string'),
    'std::decimal': ScalarType('string'),
    'std::bytes': ScalarType('Uint8Array'),
    'std::int16': ScalarType('number'),
    'std::int32': ScalarType('number'),
    'std::int64': ScalarType('number'),
    'std::float32': ScalarType('number'),
    'std::float64': ScalarType('number'),
    'std::bigint': ScalarType('bigint'),
    'std::bool': ScalarType('boolean'),
    'std::datetime': ScalarType('Date'),
    'std::json': ScalarType('unknown'),

    'std::duration': ScalarType('Duration', imported=True),
    'cal::local_datetime': ScalarType('LocalDateTime', imported=True),
    'cal::local_date': ScalarType('LocalDate', imported=True),
    'cal::local_time': ScalarType('LocalTime', imported=True),
    'cal::relative_duration': ScalarType('RelativeDuration', imported=True),
    'cal::date_duration': ScalarType('DateDuration', imported=True),
    'cfg::memory': ScalarType('ConfigMemory', imported=True),

    'ext::pgvector::vector': ScalarType('Float32Array'),
    'ext::pgvector::sparsevec': ScalarType('SparseVector', imported=True),
}


def resolve(name: str) -> ScalarType:
    try:
        return KNOWN_SCALARS[name]
    except KeyError:
        raise errors.UnsupportedTypeError(
            f'no TypeScript type is known for scalar {name!r}',
            hint='custom scalars must extend a standard scalar type',
        ) from None
