# WSGI (Web Server Gateway Interface) configuration for production deployment

# Run: gunicorn config.wsgi:application --bind 0.0.0.0:8000 --workers 4
#
# For WebSocket support (live leaderboard), use ASGI instead (see asgi.py)
# ==============================================================================

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
