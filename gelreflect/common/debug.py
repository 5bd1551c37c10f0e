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


"""Debug flags and output facilities.

An example code using this module:

    if debug.flags.walk:
        debug.header('Output descriptor')
        debug.print(descriptors.format_tree(desc))

Flags are switched on with GEL_REFLECT_DEBUG_<FLAG>=1 in the environment.
"""


from __future__ import annotations

import builtins
import os
import warnings


__all__ = ()  # Don't.


ENV_PREFIX = 'GEL_REFLECT_DEBUG_'


class FlagsMeta(type):
    def __new__(mcls, name, bases, dct):
        flags = {}
        for flagname, flag in dct.items():
            if not isinstance(flag, Flag):
                continue
            flag.name = flagname
            flags[flagname] = flag
            dct[flagname] = False

        dct['_items'] = flags
        return super().__new__(mcls, name, bases, dct)

    def __iter__(cls):
        return iter(cls._items.values())


class Flag:
    def __init__(self, *, doc: str):
        self.name = None
        self.doc = doc


class flags(metaclass=FlagsMeta):
    walk = Flag(
        doc="Print descriptor trees and the signatures produced for them.")

    negotiation = Flag(
        doc="Print raw type descriptors received from the collaborator.")


def header(*args):
    print('=' * 80)
    print(*args)
    print('=' * 80)


def print(*args):
    builtins.print(*args)


def init_debug_flags(environ=None):
    if environ is None:
        environ = os.environ

    for env_name, env_val in environ.items():
        if not env_name.startswith(ENV_PREFIX):
            continue

        name = env_name[len(ENV_PREFIX):].lower()
        if name not in flags._items:
            warnings.warn(f'Unknown debug flag: {env_name!r}', stacklevel=2)
            continue

        setattr(flags, name, env_val.strip() not in {'', '0'})


init_debug_flags()
