# config/asgi.py
# Served by gunicorn with uvicorn workers (see gunicorn_conf.py)
import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_asgi_application()
