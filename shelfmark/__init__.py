#!/usr/bin/env python

"""
    Shelfmark, a circulation desk service for libraries

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = "0.1.0"
