"""Pytest configuration and shared fixtures."""
import pytest
from enum import Enum

from managedprops import FrameworkConfig, PropertyDescriptor, new_manager, set_framework_config
import managedprops.config as config_module

_CONFIG_ENV_VARS = (
    'MANAGEDPROPS_HISTORY_LIMIT',
    'MANAGEDPROPS_MAX_REFERENCE_DEPTH',
    'MANAGEDPROPS_MISSING_REFERENCES',
    'MANAGEDPROPS_SAVING_DEFAULTS',
    'MANAGEDPROPS_DISABLE_VALUE_CACHE',
)


class ServerKey(PropertyDescriptor):
    """Keys with defaults, used by most manager tests."""
    SERVER_HOST = "localhost"
    SERVER_PORT = "8080"
    SERVER_URL = "http://${server.host}:${server.port}"
    DEBUG = "false"
    VERBOSE = "false"
    TIMEOUT = "30"
    RATIO = "0.5"
    COLOR = "red"
    GREETING = "  hello  "
    EXTRA = None


class Color(Enum):
    RED = 1
    GREEN = 2
    BLUE = 3


SAMPLE_PROPERTIES = """\
# sample file
server.host = example.org
timeout=45
extra: from file
"""


@pytest.fixture(autouse=True)
def reset_framework_config(monkeypatch):
    """Give every test a fresh framework config, unaffected by the environment."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    original = config_module._framework_config
    set_framework_config(FrameworkConfig())

    yield

    config_module._framework_config = original


@pytest.fixture
def properties_path(tmp_path):
    """Path of a property file holding SAMPLE_PROPERTIES."""
    path = tmp_path / "server.properties"
    path.write_text(SAMPLE_PROPERTIES, encoding='utf-8')
    return path


@pytest.fixture
def manager(properties_path):
    """Manager over SAMPLE_PROPERTIES with ServerKey defaults."""
    manager = new_manager(properties_path, ServerKey)
    yield manager
    manager.close()


@pytest.fixture
def empty_manager(tmp_path):
    """Manager over a file that does not exist yet."""
    manager = new_manager(tmp_path / "fresh.properties", ServerKey)
    yield manager
    manager.close()
