from sleepdata.core.config import settings

wsgi_app = "sleepdata.main:app"

# Server socket
bind = f"{settings.host}:{settings.port}"

# Worker processes
workers = settings.workers if settings.is_production else 1
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 1000
max_requests_jitter = 100

# Timeouts
timeout = settings.timeout
keepalive = settings.keepalive
graceful_timeout = 30

# Logging
loglevel = settings.log_level.lower()
accesslog = "-"  # stdout
errorlog = "-"   # stderr

# Process naming
proc_name = 'sleepdata_backend'

def when_ready(server):
    """Called just after the server is started."""
    server.log.info(f"{settings.app_name} is ready to serve requests")

def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)
