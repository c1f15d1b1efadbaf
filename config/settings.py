import os
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv
from django.core.management.utils import get_random_secret_key

# Load environment variables
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', default=get_random_secret_key())

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'False') == 'True'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', default='localhost,127.0.0.1').split(',')

if DEBUG:
    ALLOWED_HOSTS = ['*']

CSRF_TRUSTED_ORIGINS = [
    'http://localhost:8000',
    'http://127.0.0.1:8000',
]

# Dashboard origin from environment if provided
DASHBOARD_URL = os.getenv('DASHBOARD_URL')
if DASHBOARD_URL:
    CSRF_TRUSTED_ORIGINS.append(DASHBOARD_URL)

# Application definition

INSTALLED_APPS = [
    'daphne',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'channels',

    # Local apps
    'core.apps.CoreConfig',  # Workflow errors and notification utilities
    'users.apps.UsersConfig',
    'restaurants.apps.RestaurantsConfig',
    'delivery.apps.DeliveryConfig',
    'orders.apps.OrdersConfig',
    'credit.apps.CreditConfig',
    'platform_admin.apps.PlatformAdminConfig',
]


MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',  # Serve static files with Daphne
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

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

WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'


# Database
# PostgreSQL in deployments, a local SQLite file otherwise

if os.getenv('DB_NAME'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME'),
            'USER': os.getenv('DB_USER'),
            'PASSWORD': os.getenv('DB_PASSWORD'),
            'HOST': os.getenv('DB_HOST'),
            'PORT': os.getenv('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# Custom User Model
AUTH_USER_MODEL = 'users.User'

# Password validation

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Media files (driver documents, payment screenshots, offer images)
MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    # WhiteNoise configuration for serving static files with Daphne
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Celery Configuration
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes

# Prevent task duplication
CELERY_TASK_ACKS_LATE = True  # Task acknowledged after execution
CELERY_WORKER_PREFETCH_MULTIPLIER = 1  # Fetch one task at a time
CELERY_TASK_REJECT_ON_WORKER_LOST = True  # Reject task if worker dies

ENABLE_CELERY = os.getenv('ENABLE_CELERY', 'True').lower() in ('true', '1', 'yes')


# JWT Settings
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
}

# CORS Settings (adjust for production)
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

if DASHBOARD_URL:
    CORS_ALLOWED_ORIGINS.append(DASHBOARD_URL)

if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True

CORS_ALLOW_CREDENTIALS = True

# Channels Configuration
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels_redis.core.RedisChannelLayer',
        'CONFIG': {
            'hosts': [os.getenv('REDIS_URL', 'redis://localhost:6379')],
        },
    },
}

# Push WebSocket events from a background thread so requests never wait on Redis
WEBSOCKET_SEND_IN_THREAD = os.getenv('WEBSOCKET_SEND_IN_THREAD', 'True').lower() in ('true', '1', 'yes')

# Session Configuration
SESSION_COOKIE_AGE = 86400  # 24 hours
SESSION_SAVE_EVERY_REQUEST = False

# Security Settings (enable in production)
if not DEBUG:
    SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', 'True') == 'True'
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'

# Logging
LOG_DIR = BASE_DIR / 'logs'
LOG_DIR.mkdir(exist_ok=True)
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'file': {
            'level': 'ERROR',
            'class': 'logging.FileHandler',
            'filename': LOG_DIR / 'django.log',
            'formatter': 'verbose',
        },
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
        },
        'core': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
        'users': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
        'restaurants': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
        'delivery': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
        'orders': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
        'credit': {
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
        },
    },
}


# Django REST Framework Configuration
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.FormParser',
        'rest_framework.parsers.MultiPartParser',
    ],
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
}

# ============= Driver Credit & Assignment =============
CREDIT_CURRENCY = os.getenv('CREDIT_CURRENCY', 'ETB')

# Drivers located farther than this from the restaurant are not assigned
DRIVER_SEARCH_RADIUS_KM = float(os.getenv('DRIVER_SEARCH_RADIUS_KM', 10))

# Bounded retry for orders no driver could take (linear backoff, seconds)
DRIVER_ASSIGNMENT_MAX_RETRIES = int(os.getenv('DRIVER_ASSIGNMENT_MAX_RETRIES', 3))
DRIVER_ASSIGNMENT_RETRY_DELAY = int(os.getenv('DRIVER_ASSIGNMENT_RETRY_DELAY', 30))

# Drivers that have not checked in for this long are taken offline
DRIVER_OFFLINE_THRESHOLD_MINUTES = int(os.getenv('DRIVER_OFFLINE_THRESHOLD_MINUTES', 10))

# ============= Delivery Fee =============
# Fee = base + per-km rate on the straight-line distance, never below the minimum
DELIVERY_BASE_FEE = os.getenv('DELIVERY_BASE_FEE', '15')
DELIVERY_FEE_PER_KM = os.getenv('DELIVERY_FEE_PER_KM', '5')
DELIVERY_MIN_FEE = os.getenv('DELIVERY_MIN_FEE', '10')
DELIVERY_AVERAGE_SPEED_KMH = float(os.getenv('DELIVERY_AVERAGE_SPEED_KMH', 25))

# Periodic sweep of preparing/ready orders without a driver (seconds)
UNASSIGNED_ORDER_SWEEP_INTERVAL = int(os.getenv('UNASSIGNED_ORDER_SWEEP_INTERVAL', 60))

CELERY_BEAT_SCHEDULE = {
    'sweep-unassigned-orders': {
        'task': 'delivery.tasks.sweep_unassigned_orders_task',
        'schedule': float(UNASSIGNED_ORDER_SWEEP_INTERVAL),
    },
    'mark-inactive-drivers-offline': {
        'task': 'delivery.tasks.mark_inactive_drivers_offline_task',
        'schedule': 120.0,  # every 2 minutes
    },
}
