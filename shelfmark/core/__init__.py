#!/usr/bin/env python

"""
    Core module for Shelfmark: storage, sessions, access control and
    the circulation desk

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""
