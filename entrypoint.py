#!/usr/bin/env python3
"""
Container entrypoint. The runtime image has no shell, so directory setup,
optional migrations and the Gunicorn launch all happen here.
"""
import os
import sys
from pathlib import Path

for directory in ['/app/logs', '/app/media']:
    Path(directory).mkdir(parents=True, exist_ok=True)

sys.path.insert(0, '/install/lib/python3.12/site-packages')
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'erp_operations.settings')

import gunicorn.app.wsgiapp as wsgi


def prepare_database():
    """Apply migrations and make sure the standard warehouses exist"""
    import django
    from django.core.management import call_command

    django.setup()
    call_command('migrate', interactive=False)
    call_command('seed_warehouses')


if __name__ == '__main__':
    if os.environ.get('RUN_MIGRATIONS', 'false').lower() == 'true':
        prepare_database()

    sys.argv = [
        'gunicorn',
        '--bind', f"0.0.0.0:{os.environ.get('PORT', '8000')}",
        '--workers', os.environ.get('GUNICORN_WORKERS', '4'),
        '--timeout', '30',
        '--keep-alive', '2',
        '--max-requests', '1000',
        '--max-requests-jitter', '50',
        '--preload',
        '--access-logfile', '-',
        '--error-logfile', '-',
        '--log-level', os.environ.get('LOG_LEVEL', 'info'),
        '--worker-tmp-dir', '/dev/shm',
        'erp_operations.wsgi:application'
    ]
    wsgi.run()
