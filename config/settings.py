import os
import dj_database_url
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

# Security
DEBUG = os.getenv('DEBUG', '0') == '1'
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-CHANGE-IN-PRODUCTION')

# Parse ALLOWED_HOSTS from env (comma-separated)
ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')

# --- 1. APPS ---
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',

    #Local Apps
    'grading',
]

# --- 2. DATABASE ---
# The grading engine does not persist anything; the database is for the
# surrounding project that feeds it results.
DATABASES = {
    'default': dj_database_url.config(
        default=os.getenv('DATABASE_URL', f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
        conn_max_age=600,  # Connection pooling
        conn_health_checks=True,  # Health checks
    )
}

# --- 3. CACHE (subject catalog) ---
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'grading',
    }
}

# --- 4. GRADING ---
# Any value in grading/config.py can be overridden here with a GRADING_ prefix:
# GRADING_O_LEVEL_CORE_SUBJECTS = ('ENGLISH', 'KISWAHILI', 'MATHEMATICS')
# GRADING_A_LEVEL_EXCLUDED_SUBJECTS = ('GS', 'BAM')
# GRADING_ASSESSMENT_SCOPE_FIELDS = ('term', 'academic_year', 'class_id')
# GRADING_SUBJECT_CACHE_TIMEOUT = 60 * 60

# --- 5. LOGGING ---
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
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
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'grading': {
            'handlers': ['console'],
            'level': os.getenv('GRADING_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
    },
}

# --- 6. INTERNATIONALIZATION ---
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# --- 7. DEFAULT PRIMARY KEY ---
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
