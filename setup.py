#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    setup.py
    ~~~~~~~~
    Shelfmark, a circulation desk service for libraries

    :copyright: (c) 2025 by AUTHORS.
    :license: see LICENSE for more details.
"""

import os
import re
import codecs
from setuptools import setup

here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    """Taken from pypa pip setup.py:
    intentionally *not* adding an encoding option to open, See:
       https://github.com/pypa/virtualenv/issues/201#issuecomment-3145690
    """
    return codecs.open(os.path.join(here, *parts), 'r').read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")

setup(
    name='shelfmark',
    version=find_version("shelfmark", "__init__.py"),
    description='Shelfmark, a circulation desk service for libraries',
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
    ],
    author='AUTHORS',
    packages=[
        'shelfmark',
        'shelfmark.configs',
        'shelfmark.core',
        'shelfmark.routes',
        'shelfmark.schemas',
        ],
    package_data={
        'shelfmark': ['templates/*.html', 'static/*'],
        },
    platforms='any',
    license='LICENSE',
    python_requires='>=3.9',
    install_requires=[
        'fastapi',
        'uvicorn',
        'jinja2',
        'sqlalchemy>=2.0',
        'psycopg2-binary',
        'pydantic>=2',
        'email-validator',
        'itsdangerous',
        'passlib',
        'python-dotenv',
        ],
    extras_require={
        'tests': [
            'pytest',
            'httpx',
            ],
        },
    include_package_data=True
    )
