"""
Server configuration loaded from the environment
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY = os.environ.get('SUPABASE_SERVICE_KEY', '')
    SUPABASE_JWT_SECRET = os.environ.get('SUPABASE_JWT_SECRET', '')

    # Table names
    SPOTS_TABLE = 'spots'
    CATCHES_TABLE = 'catches'
    TERRITORIES_TABLE = 'territories'
    PROFILES_TABLE = 'profiles'

    # Minimum size excess (cm) needed to take a spot's title
    TITLE_MARGIN = float(os.environ.get('TITLE_MARGIN', '0.1'))
    # Optimistic update attempts before a resolution is reported as contended
    TITLE_MAX_ATTEMPTS = int(os.environ.get('TITLE_MAX_ATTEMPTS', '5'))

    SPOT_LEADERBOARD_LIMIT = int(os.environ.get('SPOT_LEADERBOARD_LIMIT', '10'))
    GLOBAL_LEADERBOARD_LIMIT = int(os.environ.get('GLOBAL_LEADERBOARD_LIMIT', '20'))

    RATE_LIMIT_REQUESTS = int(os.environ.get('RATE_LIMIT_REQUESTS', '30'))
    RATE_LIMIT_WINDOW_SEC = int(os.environ.get('RATE_LIMIT_WINDOW_SEC', '60'))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
