"""
Django Settings for TalentFlow Project

Base settings shared by every environment. Values that differ between
deployments are read from the environment through django-environ.

Usage:
    DJANGO_SETTINGS_MODULE=talentflow.settings
"""

from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)
environ.Env.read_env(BASE_DIR / '.env', overwrite=False)

# =============================================================================
# CORE
# =============================================================================

SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me')
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1'])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',

    'ats',
    'messages_sys',
    'notifications',
    'automations',
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

ROOT_URLCONF = 'talentflow.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'talentflow.wsgi.application'

# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# =============================================================================
# REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
}

# =============================================================================
# EMAIL & SMS
# =============================================================================

EMAIL_BACKEND = env('EMAIL_BACKEND', default='django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = env('EMAIL_HOST', default='localhost')
EMAIL_PORT = env.int('EMAIL_PORT', default=25)
DEFAULT_FROM_EMAIL = env('DEFAULT_FROM_EMAIL', default='no-reply@talentflow.local')

SMS_GATEWAY_URL = env('SMS_GATEWAY_URL', default='')
SMS_GATEWAY_TOKEN = env('SMS_GATEWAY_TOKEN', default='')
SMS_SENDER_ID = env('SMS_SENDER_ID', default='TalentFlow')

FRONTEND_URL = env('FRONTEND_URL', default='http://localhost:3000')

# =============================================================================
# CELERY
# =============================================================================

REDIS_URL = env('REDIS_URL', default='redis://localhost:6379/0')

CELERY_BROKER_URL = env('CELERY_BROKER_URL', default=REDIS_URL)
CELERY_RESULT_BACKEND = env('CELERY_RESULT_BACKEND', default=REDIS_URL)
CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_TASK_ALWAYS_EAGER', default=False)
CELERY_BROKER_CONNECTION_TIMEOUT = env.int('CELERY_BROKER_CONNECTION_TIMEOUT', default=3)

# =============================================================================
# AUTOMATION ENGINE
# =============================================================================

# 'durable' hands triggers to Celery; 'inline' runs them on an in-process pool.
AUTOMATION_QUEUE_MODE = env('AUTOMATION_QUEUE_MODE', default='durable')
AUTOMATION_INLINE_WORKERS = env.int('AUTOMATION_INLINE_WORKERS', default=4)

AUTOMATION_MAX_DEPTH = 3
AUTOMATION_PROCESSED_EVENT_TTL_DAYS = env.int('AUTOMATION_PROCESSED_EVENT_TTL_DAYS', default=7)
AUTOMATION_EXECUTION_HISTORY_LIMIT = 10

AUTOMATION_TRIGGER_MAX_RETRIES = env.int('AUTOMATION_TRIGGER_MAX_RETRIES', default=3)
AUTOMATION_TRIGGER_RETRY_BASE_DELAY = env.int('AUTOMATION_TRIGGER_RETRY_BASE_DELAY', default=2)

AUTOMATION_WEBHOOK_TIMEOUT = env.float('AUTOMATION_WEBHOOK_TIMEOUT', default=5.0)
AUTOMATION_WEBHOOK_MAX_RESPONSE_BYTES = env.int('AUTOMATION_WEBHOOK_MAX_RESPONSE_BYTES', default=100 * 1024)

AUTOMATION_DEADLINE_WINDOW_HOURS = env.int('AUTOMATION_DEADLINE_WINDOW_HOURS', default=24)
AUTOMATION_SCHEDULER_INTERVAL = env.int('AUTOMATION_SCHEDULER_INTERVAL', default=3600)
AUTOMATION_SCHEDULER_STARTUP_DELAY = env.int('AUTOMATION_SCHEDULER_STARTUP_DELAY', default=5)

# Hosts exempt from the webhook SSRF guard (exact names or parent domains).
SSRF_ALLOWED_HOSTS = env.list('SSRF_ALLOWED_HOSTS', default=[])
SSRF_ALLOWED_DOMAINS = env.list('SSRF_ALLOWED_DOMAINS', default=[])

# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'tenant_context': {
            '()': 'core.logging.TenantContextFilter',
        },
    },
    'formatters': {
        'verbose': {
            'format': '[{asctime}] [{levelname}] [tenant:{tenant_id}] [event:{event_id}] {name}: {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'filters': ['tenant_context'],
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'automations': {
            'handlers': ['console'],
            'level': env('AUTOMATION_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
