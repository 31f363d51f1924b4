# client/config.py
# Client-side settings, read from the environment (and .env) like the server's.

import os
from dotenv import load_dotenv

from authenledger.config import PROJECT_ROOT

load_dotenv(os.path.join(PROJECT_ROOT, '.env'))


class ClientConfig:
    API_URL = os.environ.get('AUTHENLEDGER_API_URL') or 'http://127.0.0.1:5000'
    SESSION_FILE = os.environ.get('AUTHENLEDGER_SESSION_FILE') or \
        os.path.join(os.path.expanduser('~'), '.authenledger', 'session.json')
    REQUEST_TIMEOUT = float(os.environ.get('AUTHENLEDGER_TIMEOUT') or 30)

    DEMO_EMAIL = 'demo@test.com'
    DEMO_PASSWORD = 'password123'
    DEMO_TOKEN_PREFIX = 'demo-token-'
    SESSION_LIFETIME = 24 * 60 * 60

    MAX_FILE_SIZE = 10 * 1024 * 1024
    MIN_PASSWORD_LENGTH = 6
