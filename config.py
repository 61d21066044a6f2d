import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'secret-key-goes-here')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', 'sqlite:///placement.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Preview exports are written here and downloaded by filename
    EXPORT_FOLDER = os.environ.get('EXPORT_FOLDER', os.path.join(os.getcwd(), 'storage', 'exports'))

    # Capacity used when a class has no declared maximum
    DEFAULT_MAX_CAPACITY = int(os.environ.get('DEFAULT_MAX_CAPACITY', 50))
    CAPACITY_WARNING_RATIO = float(os.environ.get('CAPACITY_WARNING_RATIO', 0.9))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Seeded on first request if missing
    SUPER_ADMIN_USERNAME = 'SuperAdmin'
    SUPER_ADMIN_ID = 'ADM001'
    SUPER_ADMIN_PASSWORD = os.environ.get('SUPER_ADMIN_PASSWORD', 'Password123')


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = 'DEBUG'
