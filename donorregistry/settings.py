"""
Django settings for donorregistry project.

Values are read from the environment (optionally via a local ``.env``
file) so the same module serves development, tests and deployments.
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=False)

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return int(raw)


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-donorregistry-dev-key')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [host.strip() for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if host.strip()]


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'donor.apps.DonorConfig',
    'blood.apps.BloodConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'donorregistry.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'donorregistry.wsgi.application'


DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'donorregistry',
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'Asia/Dhaka')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'WARNING').upper(),
            'propagate': False,
        },
    },
}


# Celery
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', '') or None
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', DEBUG)
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TIMEZONE = TIME_ZONE


# Donor matching
DONATION_RECOVERY_DAYS = _env_int('DONATION_RECOVERY_DAYS', 90)
# None keeps match results unbounded.
DONOR_MATCH_LIMIT = _env_int('DONOR_MATCH_LIMIT', None)


# Geocoding
GEOCODER_ALLOW_REMOTE = _env_bool('GEOCODER_ALLOW_REMOTE', False)
GEOCODER_USER_AGENT = os.getenv('GEOCODER_USER_AGENT', 'donorregistry-geocoder')
GEOCODER_TIMEOUT = _env_int('GEOCODER_TIMEOUT', 10)
GEOCODER_MIN_DELAY_SECONDS = float(os.getenv('GEOCODER_MIN_DELAY_SECONDS', '1.0'))
GEOCODER_COUNTRY_BIAS = os.getenv('GEOCODER_COUNTRY_BIAS', 'bd')

# Keys are "area, city" or "city", compared case-insensitively.
GEOCODER_STATIC_FIXTURES = {
    'dhaka': (23.810332, 90.412518),
    'mirpur, dhaka': (23.822350, 90.365417),
    'dhanmondi, dhaka': (23.746466, 90.376015),
    'gulshan, dhaka': (23.792496, 90.407806),
    'banani, dhaka': (23.793993, 90.404272),
    'uttara, dhaka': (23.875854, 90.379249),
    'chittagong': (22.356851, 91.783182),
    'agrabad, chittagong': (22.324200, 91.811600),
    'sylhet': (24.894930, 91.868706),
    'zindabazar, sylhet': (24.896200, 91.871400),
    'rajshahi': (24.374945, 88.604195),
    'gazipur': (23.999941, 90.420273),
    'narayanganj': (23.623810, 90.500000),
}
_extra_fixtures = os.getenv('GEOCODER_STATIC_FIXTURES')
if _extra_fixtures:
    GEOCODER_STATIC_FIXTURES.update({key: tuple(value) for key, value in json.loads(_extra_fixtures).items()})
