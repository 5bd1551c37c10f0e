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


import logging
import os
import tempfile
import unittest

from gelreflect import logsetup


class LogSetupTests(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        saved = (root.level, root.disabled, list(root.handlers))

        def restore():
            if logsetup._handler is not None:
                root.removeHandler(logsetup._handler)
                logsetup._handler.close()
                logsetup._handler = None
            root.setLevel(saved[0])
            root.disabled = saved[1]
            logging.captureWarnings(False)

        self.addCleanup(restore)

    def test_common_logsetup_levels(self):
        root = logging.getLogger()

        logsetup.setup_logging('d')
        self.assertEqual(root.level, logging.DEBUG)
        self.assertIsInstance(logsetup._handler, logsetup.ReflectLogHandler)
        self.assertIn(logsetup._handler, root.handlers)

        first = logsetup._handler
        logsetup.setup_logging('error')
        self.assertEqual(root.level, logging.ERROR)
        self.assertNotIn(first, root.handlers)
        self.assertEqual(
            sum(isinstance(h, logsetup.ReflectLogHandler)
                for h in root.handlers),
            1)

    def test_common_logsetup_silent(self):
        logsetup.setup_logging('s')
        root = logging.getLogger()
        self.assertTrue(root.disabled)
        self.assertIsNone(logsetup._handler)

        logsetup.setup_logging('WARN')
        self.assertFalse(root.disabled)
        self.assertEqual(root.level, logging.WARN)

    def test_common_logsetup_invalid(self):
        with self.assertRaisesRegex(RuntimeError, 'Invalid logging level'):
            logsetup.setup_logging('verbose')

    def test_common_logsetup_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, 'reflect.log')
            logsetup.setup_logging('info', path)
            logging.getLogger('gelreflect.test').info('hello %s', 'there')
            logsetup._handler.flush()

            with open(path) as f:
                line = f.read()

            logging.getLogger().removeHandler(logsetup._handler)
            logsetup._handler.close()
            logsetup._handler = None

        self.assertIn('INFO', line)
        self.assertIn('gelreflect.test: hello there', line)
