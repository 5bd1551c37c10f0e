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

import logging
import warnings


LOG_LEVELS = {
    'S': 'SILENT',
    'D': 'DEBUG',
    'I': 'INFO',
    'E': 'ERROR',
    'W': 'WARN',
    'WARN': 'WARN',
    'ERROR': 'ERROR',
    'CRITICAL': 'CRITICAL',
    'INFO': 'INFO',
    'DEBUG': 'DEBUG',
    'SILENT': 'SILENT'
}

LOG_FORMAT = '{levelname} {process} {asctime} {name}: {message}'


class ReflectLogFormatter(logging.Formatter):

    default_time_format = '%Y-%m-%dT%H:%M:%S'
    default_msec_format = '%s.%03d'


class ReflectLogHandler(logging.StreamHandler):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.setFormatter(ReflectLogFormatter(LOG_FORMAT, style='{'))


_handler: logging.Handler | None = None


def setup_logging(log_level, log_destination='stderr'):
    global _handler

    log_level = log_level.upper()
    try:
        log_level = LOG_LEVELS[log_level]
    except KeyError:
        raise RuntimeError('Invalid logging level {!r}'.format(log_level))

    logger = logging.getLogger()
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()
        _handler = None

    if log_level == 'SILENT':
        logger.disabled = True
        logger.setLevel(logging.CRITICAL)
        return

    logger.disabled = False

    if log_destination == 'stderr':
        handler: logging.Handler = ReflectLogHandler()
    else:
        handler = logging.FileHandler(log_destination)
        handler.setFormatter(ReflectLogFormatter(LOG_FORMAT, style='{'))

    logger.setLevel(getattr(logging, log_level))
    logger.addHandler(handler)
    _handler = handler

    # Channel warnings into logging system
    logging.captureWarnings(True)
    warnings.simplefilter('default', category=DeprecationWarning)
