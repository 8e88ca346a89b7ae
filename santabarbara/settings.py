from pathlib import Path
import os
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

# === Seguridad ===
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-desechos-hsb-cambiar-en-produccion")
DEBUG = 'RENDER' not in os.environ

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# 'RENDER' es la variable que Render nos da
RENDER_EXTERNAL_HOSTNAME = os.environ.get('RENDER_EXTERNAL_HOSTNAME')
if RENDER_EXTERNAL_HOSTNAME:
    ALLOWED_HOSTS.append(RENDER_EXTERNAL_HOSTNAME)

# === Apps instaladas ===
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "desechos",
]

# === Middleware ===
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    'whitenoise.middleware.WhiteNoiseMiddleware',
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "santabarbara.urls"

# === Templates ===
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "santabarbara.wsgi.application"

# === Base de datos ===
DATABASES = {
    'default': dj_database_url.config(
        # En Render llega "DATABASE_URL" (PostgreSQL).
        # En local se usa db.sqlite3 como respaldo.
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600
    )
}

# === Validación de contraseñas ===
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# === Idioma y zona horaria ===
LANGUAGE_CODE = "es"
TIME_ZONE = "America/Guatemala"
USE_I18N = True
USE_TZ = True

# === Archivos estáticos ===
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# === Archivos de usuario (media): PDFs de registros cerrados ===
MEDIA_URL = "/media/"
MEDIA_ROOT = Path(os.environ.get("DESECHOS_MEDIA_ROOT", BASE_DIR / "media"))

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

# === Autenticación ===
LOGIN_URL = "admin:login"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# === Logging ===
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "desechos": {
            "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
        },
    },
}

# --- CONFIGURACIÓN DEL REGISTRO DE DESECHOS ---
DESECHOS_PESO_MAXIMO_LB = 10000          # tope de la balanza
DESECHOS_REINTENTOS_CODIGO = 5           # colisiones de código QR al generar un lote
DESECHOS_REINTENTOS_REGISTRO = 3         # carrera al abrir el registro global
DESECHOS_PDF_MAX_BYTES = 25 * 1024 * 1024

DESECHOS_ENCABEZADO = {
    "linea1": "Hospital Santa Bárbara",
    "linea2": "Colonia Santa Bárbara Morales, Izabal",
    "linea3": "Control Diario de los Desechos Hospitalarios",
}
DESECHOS_FIRMA = {
    "nombre": os.environ.get("DESECHOS_FIRMA_NOMBRE", "Robert Leonardo Duarte"),
    "cargo": os.environ.get("DESECHOS_FIRMA_CARGO", "Encargado de Intendencia"),
}
