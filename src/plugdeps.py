"""plugdeps - Jenkins plugin versions, security warnings and dependency resolution

    Returns:
        int: Exit code
"""
import logging
import sys

from constants import Commands, ExitCodes
from common.errors import PluginManagerError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import RuntimeConfig, build_config, cache_directory
import cli_plugins
import cli_run
from registry.jenkins.artifacts import ArtifactCache
from registry.jenkins.catalog import VersionCatalog
from registry.jenkins.warnings import VulnerabilityIndex
from versioning.resolver import DependencyResolver

logger = logging.getLogger(__name__)


def build_catalog(config: RuntimeConfig) -> VersionCatalog:
    return VersionCatalog(config.fetch, plugins_url=config.plugins_url, war_url=config.war_url)


def build_index(config: RuntimeConfig, catalog: VersionCatalog) -> VulnerabilityIndex:
    return VulnerabilityIndex(catalog, config.fetch, url=config.update_center_url)


def dispatch(args, config: RuntimeConfig) -> int:
    """Run the selected command and return its exit code.

    Raises:
        PluginManagerError: On any fatal error of the command.
    """
    command = args.COMMAND
    if command == Commands.RUN.value:
        return cli_run.run_tool(args.TOOL_ARGS, download=args.DOWNLOAD, settings=config.fetch)
    if command == Commands.RUN_IN_DOCKER.value:
        return cli_run.run_in_docker(args.TOOL_ARGS, image=config.docker_image)

    catalog = build_catalog(config)
    if command == Commands.PLUGIN_VERSIONS.value:
        index = build_index(config, catalog) if args.MODE == "last_secure" else None
        return cli_plugins.plugin_versions(
            args.PLUGINS, args.MODE, catalog, index=index, force=config.force
        )
    if command == Commands.IS_VULNERABLE.value:
        return cli_plugins.is_vulnerable(
            args.PLUGINS, build_index(config, catalog), force=config.force
        )
    if command == Commands.RESOLVE_DEPS.value:
        with cache_directory(config.cache_dir) as plugin_dir:
            cache = ArtifactCache(
                plugin_dir, config.fetch, plugins_url=config.plugins_url, war_url=config.war_url
            )
            resolver = DependencyResolver(catalog, cache, max_workers=config.workers)
            return cli_plugins.resolve_deps(args.PLUGINS, resolver, fix=args.FIX)

    logger.error("Unknown command: %s", command)
    return ExitCodes.USAGE_ERROR.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    config = build_config(args)
    try:
        code = dispatch(args, config)
    except PluginManagerError as exc:
        if config.force:
            logger.warning("%s: %s (continuing, force mode)", args.COMMAND, exc)
            code = ExitCodes.SUCCESS.value
        else:
            logger.error("%s: %s", args.COMMAND, exc)
            code = ExitCodes.FAILURE.value
    except ValueError as exc:
        logger.error("%s: %s", args.COMMAND, exc)
        code = ExitCodes.USAGE_ERROR.value
    except KeyboardInterrupt:
        logger.error("Interrupted")
        code = ExitCodes.FAILURE.value

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit", component="cli", action=args.COMMAND, outcome=str(code)
            )
        )
    sys.exit(code)


if __name__ == "__main__":
    main()
