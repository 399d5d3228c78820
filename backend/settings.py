from pathlib import Path

from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config("SECRET_KEY", default="dev-insecure-change-me")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="localhost,127.0.0.1", cast=Csv())

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "valorizacao",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"

# Sem persistência: tudo é calculado por requisição
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
}

# ------------------------------------------------------------------------------
# Serviços OSM
# ------------------------------------------------------------------------------
NOMINATIM_URL = config("NOMINATIM_URL", default="https://nominatim.openstreetmap.org/search")
OVERPASS_URL = config("OVERPASS_URL", default="https://overpass-api.de/api/interpreter")
OSM_USER_AGENT = config("OSM_USER_AGENT", default="GradienteValorTerra/1.0")
OSM_TIMEOUT = config("OSM_TIMEOUT", default=30, cast=int)

# ------------------------------------------------------------------------------
# Gradiente de valor (defaults da tela)
# ------------------------------------------------------------------------------
VALORIZACAO_BUFFER_M = config("VALORIZACAO_BUFFER_M", default=300.0, cast=float)
VALORIZACAO_CELL_SIZE_M = config("VALORIZACAO_CELL_SIZE_M", default=50.0, cast=float)
VALORIZACAO_DECAY_K = config("VALORIZACAO_DECAY_K", default=0.005, cast=float)
VALORIZACAO_ROAD_TYPES = config(
    "VALORIZACAO_ROAD_TYPES", default="motorway,trunk,primary,secondary", cast=Csv())
VALORIZACAO_MAX_GRID_CELLS = config("VALORIZACAO_MAX_GRID_CELLS", default=20000, cast=int)

LOG_LEVEL = config("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "valorizacao": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
