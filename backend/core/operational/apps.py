from django.apps import AppConfig


class OperationalConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'operational'
    verbose_name = "Customers"
