# Gunicorn configuration file
import multiprocessing
import os

# Server socket
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
backlog = 2048

# A single worker process: rate limit windows live in process memory.
# Requests are served by a pool of threads, one request per thread.
workers = 1
worker_class = "gthread"
threads = int(os.environ.get("GUNICORN_THREADS", multiprocessing.cpu_count() * 2 + 1))
timeout = 30
keepalive = 2

# Restart workers after this many requests, to help prevent memory leaks
max_requests = 1000
max_requests_jitter = 100

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = 'spf-inspector'

daemon = False

wsgi_app = "app:app"
