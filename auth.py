"""
Authentication and rate limiting middleware
"""
import logging
import time
from collections import defaultdict
from functools import wraps

import jwt
from flask import request, jsonify

from config import Config

logger = logging.getLogger(__name__)

# Rate limiting storage (per process)
rate_limit_storage = defaultdict(list)


def verify_token(token):
    """Verify Supabase JWT token"""
    try:
        # Supabase tokens have varying audience formats
        payload = jwt.decode(
            token,
            Config.SUPABASE_JWT_SECRET,
            algorithms=['HS256'],
            options={"verify_aud": False}
        )
        return payload
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token: %s", e)
        return None


def require_auth(f):
    """Decorator to require authentication"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return jsonify({'error': 'No authorization header'}), 401

        # Extract token from "Bearer <token>"
        try:
            token = auth_header.split(' ')[1]
        except IndexError:
            return jsonify({'error': 'Invalid authorization header format'}), 401

        payload = verify_token(token)
        if not payload or not payload.get('sub'):
            return jsonify({'error': 'Invalid or expired token'}), 401

        request.user_id = payload.get('sub')

        return f(*args, **kwargs)

    return decorated_function


def rate_limit(max_requests=None, window_seconds=None):
    """Rate limiting decorator"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = getattr(request, 'user_id', None)
            if not user_id:
                return jsonify({'error': 'Unauthorized'}), 401

            limit = max_requests or Config.RATE_LIMIT_REQUESTS
            window = window_seconds or Config.RATE_LIMIT_WINDOW_SEC
            now = time.time()

            # Clean old requests from storage
            rate_limit_storage[user_id] = [
                req_time for req_time in rate_limit_storage[user_id]
                if now - req_time < window
            ]

            if len(rate_limit_storage[user_id]) >= limit:
                return jsonify({
                    'error': 'Rate limit exceeded',
                    'message': f'Maximum {limit} requests per {window} seconds'
                }), 429

            rate_limit_storage[user_id].append(now)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
