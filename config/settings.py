from pathlib import Path
from decouple import config, Csv


# BASE DIRECTORY
# BASE_DIR points to the project root (where manage.py is)
BASE_DIR = Path(__file__).resolve().parent.parent


# SECURITY SETTINGS

# SECURITY WARNING: keep the secret key used in production secret!
# Generate new key: python -c 'from django.core.management.utils import get_random_secret_key; print(get_random_secret_key())'
SECRET_KEY = config('SECRET_KEY', default='django-insecure-CHANGE-THIS-IN-PRODUCTION')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=True, cast=bool)

# Format: 'domain.com,www.domain.com,api.domain.com'
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,0.0.0.0', cast=Csv())


# INSTALLED APPS

INSTALLED_APPS = [
    # Django Channels (must be before django.contrib.staticfiles)
    'daphne',  # ASGI server for WebSocket support

    # Django built-in apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third-party apps
    'rest_framework',  # External lead ingestion API
    'corsheaders',  # CORS headers support (SPA frontend)
    'channels',  # WebSocket support (live leaderboard)
    'taggit',  # Tags for categorizing leads

    # Our custom apps
    # IMPORTANT: accounts must be first (custom user model)
    'apps.accounts',  # Users, roles, team management
    'apps.core',  # Company, API tokens, rate limiting, dashboard, demo data
    'apps.billing',  # Stripe subscriptions and plans
    'apps.leads',  # Pipeline, observations, lead values
    'apps.agenda',  # Tasks, meetings, reminders
    'apps.gamification',  # Points, badges, leaderboard
    'apps.whatsapp',  # Evolution API messaging and campaigns
    'apps.backoffice',  # Platform admin (OTP login, metrics)
]


# MIDDLEWARE

# Each request passes through these in order (top to bottom)
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # must be before CommonMiddleware
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]


# URL CONFIGURATION
ROOT_URLCONF = 'config.urls'


# TEMPLATES
# Only the admin site renders HTML; the API answers JSON
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


# ASGI/WSGI APPLICATION

# ASGI application (HTTP + WebSocket), served by Daphne
ASGI_APPLICATION = 'config.asgi.application'

# WSGI application (plain HTTP), served by Gunicorn
WSGI_APPLICATION = 'config.wsgi.application'


# DATABASE

# PostgreSQL (production-grade database)
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('DB_NAME', default='workflow360_db'),
        'USER': config('DB_USER', default='workflow360_user'),
        'PASSWORD': config('DB_PASSWORD', default='workflow360_pass'),
        'HOST': config('DB_HOST', default='db'),  # 'db' is Docker service name
        'PORT': config('DB_PORT', default='5432'),

        # Keep connection open for 10 minutes
        'CONN_MAX_AGE': 600,

        'OPTIONS': {
            'connect_timeout': 10,
        }
    }
}


# AUTHENTICATION

# Custom user model (instead of Django's default User)
# IMPORTANT: This MUST be set before first migration!
AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 8,
        }
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
]

SESSION_COOKIE_AGE = 86400  # 24 hours in seconds


# INTERNATIONALIZATION

LANGUAGE_CODE = config('LANGUAGE_CODE', default='pt-br')
TIME_ZONE = config('TIME_ZONE', default='America/Sao_Paulo')
USE_I18N = True

# All datetimes in database are stored in UTC
USE_TZ = True


# STATIC & MEDIA FILES

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Company logos and avatars
MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'


# DJANGO REST FRAMEWORK (API)

# Only the external ingestion endpoint is a DRF view; it sets its own
# authentication classes (company API tokens)
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DATETIME_FORMAT': '%Y-%m-%dT%H:%M:%S%z',
}


# CORS HEADERS (Cross-Origin Resource Sharing)

# In development: allow all
# In production: the SPA origins
if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True
else:
    CORS_ALLOWED_ORIGINS = config('CORS_ALLOWED_ORIGINS', default='', cast=Csv())

CORS_ALLOW_HEADERS = [
    'accept',
    'authorization',
    'content-type',
    'x-csrftoken',
    'x-requested-with',
    'x-admin-token',
]


# CHANNELS (WebSocket)

# Redis carries leaderboard broadcasts between Daphne instances
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels_redis.core.RedisChannelLayer',
        'CONFIG': {
            'hosts': [config('REDIS_URL', default='redis://redis:6379/1')],
        },
    },
}


# CELERY (Background Tasks)

CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://redis:6379/0')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://redis:6379/0')

CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE

# Campaigns sleep between recipients, so the hard limit is generous
CELERY_TASK_TIME_LIMIT = 60 * 60
CELERY_TASK_SOFT_TIME_LIMIT = 55 * 60


# EMAIL CONFIGURATION

# console: Prints emails to console (for development)
# smtp: Sends real emails via SMTP server (for production)
EMAIL_BACKEND = config(
    'EMAIL_BACKEND',
    default='django.core.mail.backends.console.EmailBackend'
)

EMAIL_HOST = config('EMAIL_HOST', default='smtp.resend.com')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='WorkFlow360 <noreply@workflow360.com.br>')


# LOGGING

LOG_DIR = BASE_DIR / 'logs'
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,

    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },

    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_DIR / 'django.log',
            'maxBytes': 1024 * 1024 * 10,  # 10 MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
    },

    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': config('LOG_LEVEL', default='INFO'),
            'propagate': True,
        },
        'apps': {  # Our custom apps
            'handlers': ['console', 'file'],
            'level': config('APPS_LOG_LEVEL', default='DEBUG'),
            'propagate': False,
        },
    },
}


# SITE

# Public API base (used to build webhook URLs)
SITE_URL = config('SITE_URL', default='http://localhost:8000')

# Frontend base (used in emails)
APP_URL = config('APP_URL', default='http://localhost:5173')


# STRIPE (Billing)

STRIPE_SECRET_KEY = config('STRIPE_SECRET_KEY', default='')
STRIPE_WEBHOOK_SECRET = config('STRIPE_WEBHOOK_SECRET', default='')

# Price ids from the Stripe dashboard, mapped to plans in apps/billing/plans.py
STRIPE_PRICE_INDIVIDUAL_MONTHLY = config('STRIPE_PRICE_INDIVIDUAL_MONTHLY', default='')
STRIPE_PRICE_INDIVIDUAL_YEARLY = config('STRIPE_PRICE_INDIVIDUAL_YEARLY', default='')
STRIPE_PRICE_TEAM_MONTHLY = config('STRIPE_PRICE_TEAM_MONTHLY', default='')
STRIPE_PRICE_TEAM_YEARLY = config('STRIPE_PRICE_TEAM_YEARLY', default='')

# Days granted when a checkout completes (before Stripe sends the real period)
BILLING_PERIOD_DAYS = 30
BILLING_TRIAL_DAYS = 14


# WHATSAPP (Evolution API)

# Defaults for companies that did not configure their own instance
EVOLUTION_API_URL = config('EVOLUTION_API_URL', default='')
EVOLUTION_INSTANCE_NAME = config('EVOLUTION_INSTANCE_NAME', default='')
EVOLUTION_API_KEY = config('EVOLUTION_API_KEY', default='')
EVOLUTION_API_TIMEOUT = config('EVOLUTION_API_TIMEOUT', default=30, cast=int)

WHATSAPP_MAX_MESSAGE_LENGTH = 4096
WHATSAPP_SCHEDULED_BATCH_SIZE = 10


# AI (Anthropic): campaign personalization and lead analysis

ANTHROPIC_API_KEY = config('ANTHROPIC_API_KEY', default='')
AI_MODEL = config('AI_MODEL', default='claude-3-5-haiku-latest')
AI_PERSONALIZATION_MAX_TOKENS = 500
AI_ANALYSIS_MAX_TOKENS = 1500


# BACKOFFICE (Platform admin)

# Comma separated list of emails allowed to request an admin OTP
ADMIN_OTP_EMAILS = config('ADMIN_OTP_EMAILS', default='', cast=Csv())
ADMIN_OTP_TTL_MINUTES = 10
ADMIN_SESSION_TTL_HOURS = 24


# SCHEDULED JOBS & LIMITS

STALE_LEAD_DAYS = config('STALE_LEAD_DAYS', default=7, cast=int)
MEETING_REMINDER_WINDOW_MINUTES = 60
MEETING_FEEDBACK_DELAY_MINUTES = 60
DONE_TASK_RETENTION_DAYS = 30
OPEN_TASK_RETENTION_DAYS = 90
RATE_LIMIT_LOG_RETENTION_HOURS = 24

# Daily targets used by the performance reports
DAILY_REPORT_GOALS = {'leads': 5, 'conversions': 2, 'observations': 10, 'tasks': 3}

EXTERNAL_LEADS_RATE_LIMIT = 60  # requests per minute per IP
ADMIN_OTP_RATE_LIMIT = 5  # requests per 15 minutes per IP

GAMIFICATION_LEADERBOARD_DAYS = 30
GAMIFICATION_LEADERBOARD_SIZE = 20


# SECURITY SETTINGS (Production)

if not DEBUG:
    SECURE_SSL_REDIRECT = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'

    # HSTS (HTTP Strict Transport Security)
    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True


# DEFAULT AUTO FIELD
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
