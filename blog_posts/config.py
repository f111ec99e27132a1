# blog_posts/config.py
import os
import logging

logger = logging.getLogger(__name__)

# Service port
PORT = int(os.getenv('PORT', '3001'))

# CORS
ALLOWED_ORIGINS = os.getenv('ALLOWED_ORIGINS', 'http://localhost:3000').split(',')

# JWT verification
JWT_SECRET = os.getenv('JWT_SECRET', '')
JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
JWT_PUBLIC_KEY = os.getenv('JWT_PUBLIC_KEY', '')
JWT_ROLE_CLAIM = os.getenv('JWT_ROLE_CLAIM', 'auth')

# Roles
ADMIN_ROLE = os.getenv('ADMIN_ROLE', 'admin')
POST_CREATE_ROLE = os.getenv('POST_CREATE_ROLE', ADMIN_ROLE)

# User Service (nickname lookup)
USER_SERVICE_URL = os.getenv('USER_SERVICE_URL', 'http://user-service:8001')
INTERNAL_API_KEY = os.getenv('INTERNAL_API_KEY', '')
USER_SERVICE_TIMEOUT = float(os.getenv('USER_SERVICE_TIMEOUT', '3'))
NICKNAME_LOOKUP_CONCURRENCY = int(os.getenv('NICKNAME_LOOKUP_CONCURRENCY', '8'))
UNKNOWN_AUTHOR = 'Unknown'

# Determine which DB to use
USE_POSTGRES = os.getenv('USE_POSTGRES', 'false').lower() == 'true'

if USE_POSTGRES:
    logger.info("🐘 Using PostgreSQL database for posts")

    # SSL mode configuration (asyncpg uses ssl parameter, not sslmode)
    ssl_mode = os.getenv('POSTGRES_SSLMODE', 'disable').lower()
    ssl_enabled = ssl_mode not in ('disable', 'false', 'no', '0')

    DB_CONFIG = {
        'host': os.getenv('POSTGRES_HOST', 'postgresql-service'),
        'port': int(os.getenv('POSTGRES_PORT', '5432')),
        'database': os.getenv('POSTGRES_DB', 'posts'),
        'user': os.getenv('POSTGRES_USER', 'postgres'),
        'password': os.getenv('POSTGRES_PASSWORD', ''),
        'ssl': ssl_enabled,
    }
    DATABASE_PATH = None
else:
    logger.info("💾 Using SQLite database for posts")
    DATABASE_PATH = os.getenv('BLOG_DATABASE_PATH', '/app/posts.db')
    DB_CONFIG = None

# Prometheus Metrics Configuration
REQUEST_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    10.0,
)
