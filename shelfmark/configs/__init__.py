#!/usr/bin/env python

"""
    Configurations for Shelfmark

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os
from decimal import Decimal


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
SCHEME = 'http'
HOST = os.environ.get('SHELFMARK_HOST', 'localhost')
PORT = int(os.environ.get('SHELFMARK_PORT', 8080))
WORKERS = int(os.environ.get('SHELFMARK_WORKERS', 1))
DEBUG = bool(int(os.environ.get('SHELFMARK_DEBUG', 0)))
LOG_LEVEL = os.environ.get('SHELFMARK_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('SHELFMARK_SSL_CRT')
SSL_KEY = os.environ.get('SHELFMARK_SSL_KEY')

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}
if SSL_CRT and SSL_KEY:
    OPTIONS['ssl_keyfile'] = SSL_KEY
    OPTIONS['ssl_certfile'] = SSL_CRT
    SCHEME = 'https'

# Session cookie
SEED = os.environ.get('SHELFMARK_SEED', 'shelfmark-dev-seed')
SESSION_COOKIE = os.environ.get('SESSION_COOKIE', 'user_session')
SESSION_TTL = int(os.environ.get('SESSION_TTL', 604800))  # 1 week
COOKIE_SECURE = SCHEME == 'https'

# Circulation
FINE_RATE = Decimal(os.environ.get('FINE_RATE', '10.00'))
MAX_COPIES_PER_REQUEST = 100

# Bootstrap administrator (see scripts/create_admin.py)
ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'shelfmark'),
}

# Database configuration
DB_URI = os.environ.get('DB_URI') or (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

__all__ = [
    'SCHEME', 'HOST', 'PORT', 'DEBUG', 'OPTIONS', 'DB_URI', 'DB_CONFIG',
    'TESTING', 'SEED', 'SESSION_COOKIE', 'SESSION_TTL', 'FINE_RATE',
]
