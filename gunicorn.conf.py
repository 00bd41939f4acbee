# Gunicorn configuration for the Horoscope API
# Swiss Ephemeris state is process-global; each worker process holds its own
# copy and the app serializes access within a process.

import multiprocessing
import os

# Process model: 2 workers per vCPU (safe starting point)
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2))

# Use Uvicorn workers (async support)
worker_class = "uvicorn.workers.UvicornWorker"

# Binding
bind = f"0.0.0.0:{os.getenv('PORT', 3000)}"

# Timeouts
timeout = 30
keepalive = 2
max_requests = 1000
max_requests_jitter = 100

# Each worker sets its own ephemeris path at startup
preload_app = False
worker_tmp_dir = "/dev/shm"

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Security
limit_request_line = 2048
limit_request_fields = 32
limit_request_field_size = 4096

wsgi_app = "horoscope_api.main:app"

# Environment-specific overrides
if os.getenv("ENVIRONMENT") == "production":
    timeout = 60
    max_requests = 500
    workers = min(workers, 8)
    capture_output = True
