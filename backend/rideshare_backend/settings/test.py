from .settings import *

DEBUG = False

RIDE_STORE = {
    "BACKEND": "memory",
    "LOG_CONNECTION_ON_STARTUP": False,
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

TIME_ZONE = "UTC"

LOGGING['root']['level'] = 'WARNING'
