"""
Web dashboard configuration.
"""
from atelier.config import config, VERSION

# Web server settings
WEB_HOST = config.web.host
WEB_PORT = config.web.port

# Request budget before the timeout middleware answers 504
REQUEST_TIMEOUT_SECONDS = config.web.request_timeout_seconds

__all__ = ["WEB_HOST", "WEB_PORT", "REQUEST_TIMEOUT_SECONDS", "VERSION"]
