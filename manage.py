# WORKFLOW360 CRM - DJANGO MANAGEMENT SCRIPT
#
# Common commands:
# - python manage.py runserver
# - python manage.py makemigrations && python manage.py migrate
# - python manage.py createsuperuser
# - python manage.py seed_demo_data --company <slug>
# - python manage.py test --settings=config.settings_test
# ==============================================================================

import os
import sys


def main():
    """Run administrative tasks"""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
