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

from typing import Optional, Type, Dict


__all__ = (
    'ReflectionError',
    'NegotiationError', 'ProtocolError', 'UnsupportedTypeError',
    'UnsupportedFeatureError', 'QueryNotFoundError',
    'ResultCardinalityMismatchError',
    'DescriptorContractError', 'SetCardinalityError', 'NestedSetError',
    'RangeSubtypeError', 'UnexpectedDescriptorError',
    'UnknownCardinalityError',
)


class ReflectionErrorMeta(type):
    _error_map: Dict[int, Type[ReflectionError]] = {}
    _name_map: Dict[str, Type[ReflectionError]] = {}

    def __new__(mcls, name, bases, dct):
        cls = super().__new__(mcls, name, bases, dct)
        if cls._code is None and cls.__module__ != __name__:
            raise RuntimeError(
                'direct subclassing of ReflectionError is prohibited; '
                'subclass one of its subclasses in gelreflect.errors')

        assert name not in mcls._name_map
        mcls._name_map[name] = cls

        code = dct.get('_code')
        if code is not None:
            assert code not in mcls._error_map, \
                f'duplicate error code {code:#x} for {name}'
            mcls._error_map[code] = cls

        return cls

    @classmethod
    def get_error_class_from_code(mcls, code: int) -> Type[ReflectionError]:
        return mcls._error_map[code]

    @classmethod
    def get_error_class_from_name(mcls, name: str) -> Type[ReflectionError]:
        return mcls._name_map[name]


class ReflectionError(Exception, metaclass=ReflectionErrorMeta):

    _code: Optional[int] = None

    def __init__(
        self,
        msg: Optional[str] = None,
        *,
        hint: Optional[str] = None,
        details: Optional[str] = None,
    ):
        if type(self) is ReflectionError:
            raise RuntimeError(
                'ReflectionError is not supposed to be instantiated directly')

        self._hint = hint
        self._details = details
        super().__init__(msg)

    @classmethod
    def get_code(cls):
        if cls._code is None:
            raise RuntimeError(
                f'error code is not set (type: {cls.__name__})')
        return cls._code

    @property
    def hint(self) -> Optional[str]:
        return self._hint

    @property
    def details(self) -> Optional[str]:
        return self._details

    def to_json(self):
        err_dct = {
            'message': str(self),
            'type': type(self).__name__,
            'code': self.get_code(),
        }
        if self._hint is not None:
            err_dct['hint'] = self._hint
        if self._details is not None:
            err_dct['details'] = self._details
        return err_dct


#
# Failures of the negotiation collaborator.  These are raised before any
# descriptor is walked and reach the caller unchanged.
#

class NegotiationError(ReflectionError):
    _code = 0x_01_00_00_00


class ProtocolError(NegotiationError):
    _code = 0x_01_01_00_00


class UnsupportedTypeError(NegotiationError):
    _code = 0x_01_02_00_00


class UnsupportedFeatureError(NegotiationError):
    _code = 0x_01_03_00_00


class QueryNotFoundError(NegotiationError):
    _code = 0x_01_04_00_00


class ResultCardinalityMismatchError(NegotiationError):
    _code = 0x_01_05_00_00


#
# Descriptor-contract violations detected by the walker.
#

class DescriptorContractError(ReflectionError):
    _code = 0x_02_00_00_00


class SetCardinalityError(DescriptorContractError):
    _code = 0x_02_00_00_01

    def __init__(self, msg=None, *, field, cardinality, **kwargs):
        super().__init__(msg, **kwargs)
        self.field = field
        self.cardinality = cardinality


class NestedSetError(DescriptorContractError):
    _code = 0x_02_00_00_02

    def __init__(self, msg=None, *, field, **kwargs):
        super().__init__(msg, **kwargs)
        self.field = field


class RangeSubtypeError(DescriptorContractError):
    _code = 0x_02_00_00_03

    def __init__(self, msg=None, *, kind, subtype_kind, **kwargs):
        super().__init__(msg, **kwargs)
        self.kind = kind
        self.subtype_kind = subtype_kind


class UnexpectedDescriptorError(DescriptorContractError):
    _code = 0x_02_00_00_04

    def __init__(self, msg=None, *, kind, **kwargs):
        super().__init__(msg, **kwargs)
        self.kind = kind


class UnknownCardinalityError(DescriptorContractError):
    _code = 0x_02_00_00_05

    def __init__(self, msg=None, *, cardinality, **kwargs):
        super().__init__(msg, **kwargs)
        self.cardinality = cardinality
