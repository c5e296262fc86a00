import os
from celery import Celery


# Set default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'domainvalue.settings')

app = Celery('predictor')

# Load CELERY_* keys from Django settings and discover tasks in installed apps
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
