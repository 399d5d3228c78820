from django.apps import AppConfig


class ValorizacaoConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'valorizacao'
    verbose_name = "Gradiente de valor da terra"
