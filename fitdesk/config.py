import os
from datetime import timedelta

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session token
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'fitdesk-jwt-secret-min-32-characters-long'
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_IN = timedelta(days=int(os.environ.get('JWT_EXPIRES_DAYS', 7)))
    AUTH_COOKIE_NAME = 'fitdesk_token'
    AUTH_COOKIE_SECURE = False

    # Upload
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request size
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(basedir, 'static', 'uploads')
    ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
    CLIENT_PHOTO_MAX_SIZE = 5 * 1024 * 1024
    INVOICE_LOGO_MAX_SIZE = 2 * 1024 * 1024

    # Twilio (SMS / WhatsApp reminders)
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_SMS_FROM = os.environ.get('TWILIO_SMS_FROM')
    TWILIO_WHATSAPP_FROM = os.environ.get('TWILIO_WHATSAPP_FROM') or 'whatsapp:+14155238886'
    TWILIO_TIMEOUT = 30

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Notifications
    NOTIFICATION_LIMIT = 50
    NOTIFICATION_SUBSCRIBER_LIMIT = 10

    # Pagination
    ITEMS_PER_PAGE = 10
    MAX_ITEMS_PER_PAGE = 50


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, '..', 'instance', 'fitdesk.db')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    AUTH_COOKIE_SECURE = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, '..', 'instance', 'fitdesk.db')

    # Fix for Railway/Render PostgreSQL URL
    if SQLALCHEMY_DATABASE_URI and SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://', 1)


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
    TWILIO_SMS_FROM = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
