from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="bVwJmOGxE9aS1jKL5z3Qp8rTnY2cUhFdW7eXvA4gR6iM0oPsDkNyBtZlCqHfJu",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# LOGGING
# ------------------------------------------------------------------------------
LOGGING["loggers"]["livepoll.realtime"]["level"] = env(  # noqa: F405
    "LIVEPOLL_REALTIME_LOG_LEVEL",
    default="DEBUG",
)

# Your stuff...
# ------------------------------------------------------------------------------
