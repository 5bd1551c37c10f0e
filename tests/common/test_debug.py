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


import contextlib
import io
import unittest
import unittest.mock
import warnings

from gelreflect.common import debug


class DebugTests(unittest.TestCase):

    def setUp(self):
        for flag in debug.flags:
            patcher = unittest.mock.patch.object(
                debug.flags, flag.name, getattr(debug.flags, flag.name))
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_common_debug_flags(self):
        flags = {flag.name: flag for flag in debug.flags}
        self.assertEqual(set(flags), {'walk', 'negotiation'})
        self.assertIn('descriptor', flags['walk'].doc)
        self.assertIsInstance(debug.flags.walk, bool)
        self.assertIsInstance(debug.flags.negotiation, bool)

    def test_common_debug_init_flags(self):
        debug.init_debug_flags({
            'GEL_REFLECT_DEBUG_WALK': '1',
            'GEL_REFLECT_DEBUG_NEGOTIATION': '0',
            'UNRELATED': '1',
        })
        self.assertIs(debug.flags.walk, True)
        self.assertIs(debug.flags.negotiation, False)

        debug.init_debug_flags({'GEL_REFLECT_DEBUG_WALK': ''})
        self.assertIs(debug.flags.walk, False)

    def test_common_debug_unknown_flag(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            debug.init_debug_flags({'GEL_REFLECT_DEBUG_NOPE': '1'})
        self.assertEqual(len(caught), 1)
        self.assertIn('GEL_REFLECT_DEBUG_NOPE', str(caught[0].message))
        self.assertFalse(hasattr(debug.flags, 'nope'))

    def test_common_debug_header(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            debug.header('Title')
            debug.print('body', 1)
        self.assertEqual(
            out.getvalue(),
            '=' * 80 + '\nTitle\n' + '=' * 80 + '\nbody 1\n')
