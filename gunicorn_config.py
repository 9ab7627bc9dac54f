import os

bind = os.environ.get("GUNICORN_BIND", "127.0.0.1:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "3"))
wsgi_app = "erp_operations.wsgi:application"
user = "www-data"
group = "www-data"
loglevel = os.environ.get("LOG_LEVEL", "info")
errorlog = "/var/log/gunicorn/error.log"
accesslog = "/var/log/gunicorn/access.log"
