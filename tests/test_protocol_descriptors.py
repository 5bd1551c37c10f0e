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


import io
import types
import unittest
import uuid

from gelreflect import errors
from gelreflect.common import binwrapper
from gelreflect.protocol import descriptors as d
from gelreflect.protocol import enums
from gelreflect.testbase import typedesc


ONE = enums.Cardinality.ONE
AT_MOST_ONE = enums.Cardinality.AT_MOST_ONE
MANY = enums.Cardinality.MANY


class TestParseDescriptors(unittest.TestCase):

    def parse(self, builder):
        return d.parse(builder.getvalue())

    def test_protocol_parse_empty(self):
        self.assertIs(d.parse(b''), d.NULL_DESC)
        self.assertEqual(d.NULL_DESC.kind, 'null')
        self.assertEqual(d.NULL_DESC.tid, d.NULL_TYPE_ID)

    def test_protocol_parse_scalar_01(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('std::str')
        desc = self.parse(b)
        self.assertIsInstance(desc, d.ScalarDesc)
        self.assertEqual(desc.name, 'std::str')
        self.assertEqual(desc.base_type, 'string')
        self.assertFalse(desc.imported_type)
        self.assertFalse(desc.schema_defined)
        self.assertEqual(desc.tid, uuid.UUID(int=1))

    def test_protocol_parse_scalar_02(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('cal::local_date')
        desc = self.parse(b)
        self.assertEqual(desc.base_type, 'LocalDate')
        self.assertTrue(desc.imported_type)

    def test_protocol_parse_scalar_ancestors(self):
        b = typedesc.DescriptorBuilder()
        base = b.scalar('std::int64')
        parent = b.scalar('default::positive', ancestors=[base])
        b.scalar('default::small_positive', ancestors=[parent, base])
        desc = self.parse(b)
        self.assertEqual(desc.name, 'default::small_positive')
        self.assertEqual(desc.base_type, 'number')

    def test_protocol_parse_scalar_unknown(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('default::custom')
        with self.assertRaisesRegex(
                errors.UnsupportedTypeError, "'default::custom'"):
            self.parse(b)

    def test_protocol_parse_enum(self):
        b = typedesc.DescriptorBuilder()
        b.enum('default::Color', ['Red', 'Green', 'Синий'])
        desc = self.parse(b)
        self.assertIsInstance(desc, d.EnumDesc)
        self.assertEqual(desc.kind, 'enum')
        self.assertEqual(desc.values, ['Red', 'Green', 'Синий'])
        self.assertEqual(desc.base_type, 'string')

    def test_protocol_parse_shape_01(self):
        b = typedesc.DescriptorBuilder()
        user = b.object_type('default::User')
        uid = b.scalar('std::uuid')
        name = b.scalar('std::str')
        b.shape(
            [('id', ONE, uid), ('name', AT_MOST_ONE, name)],
            objtype=user,
            flags=d.ShapePointerFlags.IS_IMPLICIT,
        )
        desc = self.parse(b)

        self.assertIsInstance(desc, d.ShapeDesc)
        self.assertEqual(desc.kind, 'object')
        self.assertIsInstance(desc.objtype, d.ObjectTypeDesc)
        self.assertEqual(desc.objtype.name, 'default::User')
        self.assertTrue(desc.objtype.schema_defined)
        self.assertEqual(
            [(el.name, el.cardinality) for el in desc.elements],
            [('id', ONE), ('name', AT_MOST_ONE)])
        self.assertEqual(
            desc.elements[0].flags, d.ShapePointerFlags.IS_IMPLICIT)
        self.assertEqual(
            [sub.base_type for sub in desc.subtypes], ['string', 'string'])

    def test_protocol_parse_shape_02(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        tags = b.set(s)
        b.shape([('tags', MANY, tags)])
        desc = self.parse(b)
        self.assertIsNone(desc.objtype)
        self.assertIsInstance(desc.subtypes[0], d.SetDesc)
        self.assertEqual(desc.subtypes[0].subtype.kind, 'scalar')

    def test_protocol_parse_input_shape(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        i = b.scalar('std::int32')
        b.input_shape([('name', ONE, s), ('limit', AT_MOST_ONE, i)])
        desc = self.parse(b)
        self.assertIsInstance(desc, d.ShapeDesc)
        self.assertIsNone(desc.objtype)
        self.assertEqual([el.name for el in desc.elements], ['name', 'limit'])
        self.assertEqual(desc.subtypes[1].base_type, 'number')

    def test_protocol_parse_tuples(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        i = b.scalar('std::int64')
        tup = b.tuple(s, i)
        b.namedtuple([('a', tup), ('b', i)])
        desc = self.parse(b)

        self.assertIsInstance(desc, d.NamedTupleDesc)
        self.assertEqual(desc.names, ['a', 'b'])
        self.assertIsInstance(desc.subtypes[0], d.TupleDesc)
        self.assertEqual(len(desc.subtypes[0].subtypes), 2)
        self.assertEqual(len(desc.children()), 2)

    def test_protocol_parse_empty_tuple(self):
        b = typedesc.DescriptorBuilder()
        b.tuple()
        desc = self.parse(b)
        self.assertIsInstance(desc, d.TupleDesc)
        self.assertEqual(desc.subtypes, [])

    def test_protocol_parse_array_01(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        b.array(s)
        desc = self.parse(b)
        self.assertIsInstance(desc, d.ArrayDesc)
        self.assertEqual(desc.dim_len, -1)
        self.assertEqual(desc.subtype.name, 'std::str')

    def test_protocol_parse_array_02(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        b.array(s, dimensions=(-1, -1))
        with self.assertRaisesRegex(
                errors.UnsupportedFeatureError, 'more than one dimension'):
            self.parse(b)

        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        b.array(s, dimensions=(3,))
        with self.assertRaisesRegex(
                errors.UnsupportedFeatureError, 'non-infinite'):
            self.parse(b)

    def test_protocol_parse_ranges(self):
        b = typedesc.DescriptorBuilder()
        i = b.scalar('std::int64')
        r = b.range(i)
        mr = b.multirange(i)
        b.tuple(r, mr)
        desc = self.parse(b)
        rng, mrng = desc.subtypes
        self.assertIsInstance(rng, d.RangeDesc)
        self.assertIsInstance(mrng, d.MultiRangeDesc)
        self.assertEqual(rng.subtype.base_type, 'number')
        self.assertIs(rng.subtype, mrng.subtype)

    def test_protocol_parse_compound(self):
        b = typedesc.DescriptorBuilder()
        u = b.object_type('default::User')
        g = b.object_type('default::Group')
        b.compound('default::User | default::Group', 1, [u, g])
        desc = self.parse(b)
        self.assertIsInstance(desc, d.CompoundTypeDesc)
        self.assertIs(desc.op, d.CompoundOp.UNION)
        self.assertEqual(
            [c.name for c in desc.components],
            ['default::User', 'default::Group'])

    def test_protocol_parse_compound_bad_op(self):
        b = typedesc.DescriptorBuilder()
        u = b.object_type('default::User')
        b.compound('default::User', 7, [u])
        with self.assertRaisesRegex(errors.ProtocolError, 'unexpected op'):
            self.parse(b)

    def test_protocol_parse_sql_row(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        b.sql_row([('col', s)])
        desc = self.parse(b)
        self.assertIsInstance(desc, d.SQLRowDesc)
        self.assertEqual(desc.kind, 'sql row')
        self.assertEqual(desc.names, ['col'])

    def test_protocol_parse_annotations(self):
        b = typedesc.DescriptorBuilder()
        b.annotation('some text')
        s = b.scalar('std::str')
        b.annotation('more text')
        b.array(s)
        desc = self.parse(b)
        self.assertIsInstance(desc, d.ArrayDesc)
        self.assertEqual(desc.subtype.name, 'std::str')

    def test_protocol_parse_only_annotations(self):
        b = typedesc.DescriptorBuilder()
        b.annotation('lonely')
        with self.assertRaisesRegex(
                errors.ProtocolError, 'could not parse type descriptor'):
            self.parse(b)

    def test_protocol_parse_unknown_tag(self):
        b = typedesc.DescriptorBuilder()
        b.raw(b'\x42')
        with self.assertRaisesRegex(
                errors.ProtocolError,
                'no descriptor implementation for Gel data kind 0x42'):
            self.parse(b)

    def test_protocol_parse_base_scalar(self):
        b = typedesc.DescriptorBuilder()
        b.raw(d.DescriptorTag.BASE_SCALAR.value + uuid.uuid4().bytes)
        with self.assertRaisesRegex(
                errors.ProtocolError,
                'unexpected BASE_SCALAR descriptor in protocol 2.0'):
            self.parse(b)

    def test_protocol_parse_truncated(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('std::str')
        with self.assertRaisesRegex(
                errors.ProtocolError, 'malformed type descriptor'):
            d.parse(b.getvalue()[:-1])

        # Length prefix claims more than the descriptor carries.
        body = binwrapper.BinWrapper(io.BytesIO())
        body.write_ui32(100)
        body.write_bytes(d.DescriptorTag.SCALAR.value)
        with self.assertRaisesRegex(
                errors.ProtocolError, 'malformed type descriptor'):
            d.parse(body.getvalue())

    def test_protocol_parse_trailing_data(self):
        body = binwrapper.BinWrapper(io.BytesIO())
        body.write_bytes(d.DescriptorTag.SET.value)
        body.write_uuid(uuid.uuid4())
        body.write_ui16(0)
        body.write_bytes(b'\x00')

        b = typedesc.DescriptorBuilder()
        b.scalar('std::str')
        b.raw(body.getvalue())
        with self.assertRaisesRegex(
                errors.ProtocolError, 'trailing data after SET'):
            self.parse(b)

    def test_protocol_parse_dangling_ref(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('std::str')
        b.set(5)
        with self.assertRaisesRegex(
                errors.ProtocolError, 'dangling type reference: 5'):
            self.parse(b)

    def test_protocol_parse_forward_ref(self):
        b = typedesc.DescriptorBuilder()
        b.set(1)
        b.scalar('std::str')
        with self.assertRaisesRegex(
                errors.ProtocolError, 'dangling type reference: 1'):
            self.parse(b)

    def test_protocol_parse_bad_cardinality(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        b.input_shape([('name', types.SimpleNamespace(value=0x01), s)])
        with self.assertRaisesRegex(
                errors.ProtocolError, 'invalid cardinality 0x1'):
            self.parse(b)

    def test_protocol_parse_bad_utf8(self):
        body = binwrapper.BinWrapper(io.BytesIO())
        body.write_bytes(d.DescriptorTag.OBJECT.value)
        body.write_uuid(uuid.uuid4())
        body.write_len32_prefixed_bytes(b'\xff\xfe')
        body.write_ui8(1)

        b = typedesc.DescriptorBuilder()
        b.raw(body.getvalue())
        with self.assertRaisesRegex(
                errors.ProtocolError, 'invalid UTF-8'):
            self.parse(b)

    def test_protocol_parse_old_protocol(self):
        b = typedesc.DescriptorBuilder()
        b.scalar('std::str')
        with self.assertRaisesRegex(
                errors.UnsupportedFeatureError, 'protocol 1.0'):
            d.parse(b.getvalue(), protocol_version=(1, 0))


class TestFormatTree(unittest.TestCase):

    def test_protocol_format_tree(self):
        b = typedesc.DescriptorBuilder()
        s = b.scalar('std::str')
        e = b.enum('default::Color', ['Red'])
        arr = b.array(s)
        b.shape([('name', ONE, s), ('color', AT_MOST_ONE, e),
                  ('aliases', ONE, arr)])
        desc = d.parse(b.getvalue())

        self.assertEqual(
            d.format_tree(desc),
            'object\n'
            '  .name [ONE]\n'
            '    scalar std::str -> string\n'
            '  .color [AT_MOST_ONE]\n'
            "    enum default::Color ['Red']\n"
            '  .aliases [ONE]\n'
            '    array\n'
            '      scalar std::str -> string')
