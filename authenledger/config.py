# config.py
# Manages application configuration for different environments using python-dotenv.

import os
from datetime import timedelta
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
PROJECT_ROOT = os.path.dirname(basedir)

load_dotenv(os.path.join(PROJECT_ROOT, '.env'))

class Config:
    """Base configuration class with settings common to all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'a-very-hard-to-guess-default-secret-key'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'a-strong-jwt-secret-key'
    # Sessions live for 24 hours and are never renewed.
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ["headers"]

    # Per-file upload limit; the request limit leaves room for a batch.
    MAX_FILE_SIZE = 10 * 1024 * 1024
    MAX_CONTENT_LENGTH = 100 * 1024 * 1024
    VALIDATIONS_PAGE_LIMIT = 50

    VERIFY_URL_TEMPLATE = os.environ.get('VERIFY_URL_TEMPLATE') or \
        'https://verify.authenledger.com/v/{certificate_id}?h={hash}'
    PLATFORM_NAME = 'AuthenLedger'

    DEMO_EMAIL = 'demo@test.com'
    DEMO_PASSWORD = os.environ.get('DEMO_PASSWORD') or 'password123'

    # Seed for the simulated scorer; None means a fresh random stream.
    SCORER_SEED = None

    @staticmethod
    def init_app(app):
        pass

class DevelopmentConfig(Config):
    """Configuration for the development environment."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///' + os.path.join(PROJECT_ROOT, 'instance', 'authenledger-dev.db')

class TestingConfig(Config):
    """Configuration for the testing environment."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite:///:memory:'
    SCORER_SEED = 1234

class ProductionConfig(Config):
    """Configuration for the production environment."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise ValueError("DATABASE_URL is not set for the production environment.")

config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
