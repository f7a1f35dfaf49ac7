"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1
    USAGE_ERROR = 2


class Commands(Enum):
    """Sub-commands supported by the program.

    Args:
        Enum (string): Sub-command names as typed on the command line.
    """

    RUN = "run"
    RUN_IN_DOCKER = "run-in-docker"
    PLUGIN_VERSIONS = "plugin-versions"
    IS_VULNERABLE = "is-vulnerable"
    RESOLVE_DEPS = "resolve-deps"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CORE_NAME = "core"
    PLUGINS_URL = "https://updates.jenkins.io/download/plugins"
    WAR_URL = "https://updates.jenkins.io/download/war"
    UPDATE_CENTER_URL = "https://updates.jenkins.io/update-center.json"
    UPDATE_CENTER_PREFIX = "updateCenter.post("
    PLUGIN_EXTENSION = "hpi"
    WAR_EXTENSION = "war"
    WAR_FILE_NAME = "jenkins"
    MANIFEST_ENTRY = "META-INF/MANIFEST.MF"
    DEPENDENCIES_HEADER = "Plugin-Dependencies"
    OPTIONAL_MARKER = "resolution:=optional"
    LISTING_PREFIX = "/download"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "PLUGDEPS_LOG_LEVEL"
    ENV_CACHE_DIR = "PLUGDEPS_CACHE_DIR"
    ENV_PREFIX = "PLUGDEPS_"
    CONFIG_FILE_NAMES = ["plugdeps.yml", "plugdeps.yaml"]
    USER_CONFIG_PATH = "~/.config/plugdeps/config.yml"

    REQUEST_TIMEOUT = 30  # read timeout in seconds for all HTTP requests
    CONNECT_TIMEOUT = 20
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_DELAY_SEC = 0.0
    HTTP_RETRY_MAX_TIME_SEC = 60
    HTTP_CACHE_TTL_SEC = 300
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    MAX_WORKERS = 4
    VERSION_COMPONENTS = 4
    LEGACY_COMPONENT_LIMIT = 1000

    TOOL_VERSION = "2.9.0"
    TOOL_NAME = f"jenkins-plugin-manager-{TOOL_VERSION}"
    TOOL_URL = (
        "https://github.com/jenkinsci/plugin-installation-manager-tool/releases/download/"
        f"{TOOL_VERSION}/{TOOL_NAME}.jar"
    )
    DOCKER_IMAGE = "jenkins/jenkins"
    ENV_DOCKER_IMAGE = "JENKINS_DOCKER_IMG"
    DOCKER_TOOL_COMMAND = "jenkins-plugin-cli"
