# desechos/apps.py
from django.apps import AppConfig


class DesechosConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'desechos'
    verbose_name = 'Desechos hospitalarios'
