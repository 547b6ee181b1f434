"""
Server settings backed by a .properties file.

Declares the keys of a small web server, with defaults that reference each
other, and walks through reading, editing, undoing and saving them.

Run with a path to use an existing file:

    python examples/server_settings.py /tmp/server.properties
"""

from enum import Enum
import logging
import sys

from managedprops import PropertyDescriptor, new_manager

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ServerSettings(PropertyDescriptor):
    """Keys of the server configuration file; values are the defaults."""
    SERVER_HOST = "localhost"
    SERVER_PORT = "8080"
    SERVER_SCHEME = "http"
    SERVER_URL = "${server.scheme}://${server.host}:${server.port}"
    API_URL = "${server.url}/api/${api.version:v1}"
    API_VERSION = None
    LOG_LEVEL = "info"
    LOG_DIRECTORY = "${user.home:/var/log}/server"
    REQUEST_TIMEOUT = "30"
    CACHE_ENABLED = "true"


def main(path: str) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    with new_manager(path, ServerSettings) as settings:
        settings.comment = "Server settings"

        api_url = settings.get_managed_property(ServerSettings.API_URL)
        api_url.add_listener(
            lambda event: logger.info(f"api.url affected by {event.event_type.value} "
                                      f"({event.property_key}), now {api_url.get()}")
        )

        logger.info(f"API at {settings.get(ServerSettings.API_URL)}")
        logger.info(f"Timeout {settings.get_int(ServerSettings.REQUEST_TIMEOUT)}s, "
                    f"cache {'on' if settings.get_bool(ServerSettings.CACHE_ENABLED) else 'off'}, "
                    f"log level {settings.get_enum(ServerSettings.LOG_LEVEL, LogLevel).name}")

        settings.set(ServerSettings.SERVER_SCHEME, "https")
        settings.set(ServerSettings.SERVER_PORT, 8443)
        settings.set(ServerSettings.API_VERSION, "v2")
        settings.set(ServerSettings.LOG_LEVEL, LogLevel.DEBUG)

        settings.undo(ServerSettings.SERVER_PORT)
        logger.info(f"After undoing the port change: {settings.get(ServerSettings.SERVER_URL)}")

        if settings.is_modified():
            settings.save()

        for key in sorted(settings.key_set(), key=lambda key: key.name):
            marker = "" if settings.is_default(key) else " (changed)"
            logger.info(f"{settings.translator.get_property_name(key)} = {settings.get(key)}{marker}")

        settings.reset_all()
        logger.info(f"Reset, unsaved: {settings.is_modified()}")


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else "server.properties")
