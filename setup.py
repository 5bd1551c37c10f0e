#
# This source file is part of the EdgeDB open source project.
#
# Copyright 2008-present MagicStack Inc. and the EdgeDB authors.
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


import pathlib

import setuptools


ROOT_PATH = pathlib.Path(__file__).parent.resolve()

RUNTIME_DEPS = [
    'click~=8.1',
    'immutables>=0.18',
]

TEST_DEPS = [
    'async-solipsism>=0.5',
    'pytest>=7.0',
]


setuptools.setup(
    name='gel-reflect',
    version='1.0.0.dev0',
    description=(
        'TypeScript signatures for Gel queries from negotiated '
        'type descriptors'
    ),
    license='Apache-2.0',
    python_requires='>=3.10',
    packages=setuptools.find_packages(
        where=str(ROOT_PATH), include=['gelreflect', 'gelreflect.*']),
    install_requires=RUNTIME_DEPS,
    extras_require={
        'test': TEST_DEPS,
    },
    entry_points={
        'console_scripts': [
            'gel-reflect = gelreflect.tools.cli:main',
        ],
    },
)
