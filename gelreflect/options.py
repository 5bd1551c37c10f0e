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
from typing import Mapping, Optional

import dataclasses

import immutables


DEFAULT_MODULE = 'default'


@dataclasses.dataclass(frozen=True)
class Session:
    """Session state a query is described within."""

    module: str = DEFAULT_MODULE
    aliases: immutables.Map = immutables.Map()

    @classmethod
    def defaults(cls) -> Session:
        return _DEFAULT_SESSION

    def with_module(self, module: str) -> Session:
        return dataclasses.replace(self, module=module)

    def with_aliases(self, aliases: Mapping[str, str]) -> Session:
        return dataclasses.replace(self, aliases=self.aliases.update(aliases))


_DEFAULT_SESSION = Session()


@dataclasses.dataclass(frozen=True)
class Options:
    """Options a connection holder is acquired with."""

    session: Session = _DEFAULT_SESSION
    # Seconds to wait for a pooled connection; None waits forever.
    acquire_timeout: Optional[float] = None

    @classmethod
    def defaults(cls) -> Options:
        return _DEFAULT_OPTIONS

    def with_session(self, session: Session) -> Options:
        return dataclasses.replace(self, session=session)


_DEFAULT_OPTIONS = Options()
