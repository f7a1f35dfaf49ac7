"""Argument parsing functionality for plugdeps."""

import argparse

from constants import Commands

_TOOL_COMMANDS = (Commands.RUN.value, Commands.RUN_IN_DOCKER.value)


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="plugdeps",
        description=(
            "plugdeps - Jenkins plugin versions, security warnings and dependency resolution"
        ),
        epilog=(
            "For any PLUGIN you can give just the name ('git') or append a version "
            "('git:1.2.3'). Jenkins core is 'core'; its version may be prefixed "
            "with 'LTS '."
        ),
        add_help=True,
    )

    parser.add_argument("-f", "--force",
                        dest="FORCE",
                        help="Force mode (do not die on errors)",
                        action="store_true")
    parser.add_argument("-p", "--plugin-dir",
                        dest="PLUGIN_DIR",
                        help="Directory to download plugins to (default: a temporary directory)",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--connect-timeout",
                        dest="CONNECT_TIMEOUT",
                        help="Connect timeout in seconds for every request",
                        action="store",
                        type=float)
    parser.add_argument("--read-timeout",
                        dest="READ_TIMEOUT",
                        help="Read timeout in seconds for every request",
                        action="store",
                        type=float)
    parser.add_argument("--retries",
                        dest="RETRIES",
                        help="Retries after a failed request",
                        action="store",
                        type=int)
    parser.add_argument("--retry-delay",
                        dest="RETRY_DELAY",
                        help="Seconds to wait between retries",
                        action="store",
                        type=float)
    parser.add_argument("--retry-max-time",
                        dest="RETRY_MAX_TIME",
                        help="Give up retrying after this many seconds (0 = no limit)",
                        action="store",
                        type=float)
    parser.add_argument("--workers",
                        dest="WORKERS",
                        help="Parallel plugin downloads while resolving dependencies",
                        action="store",
                        type=int)

    sub = parser.add_subparsers(dest="COMMAND", metavar="COMMAND", required=True)

    run = sub.add_parser(Commands.RUN.value,
                         help="Run 'java -jar jenkins-plugin-manager.jar ARGS'",
                         add_help=False)
    run.add_argument("--download",
                     dest="DOWNLOAD",
                     help="Download the plugin installation manager jar first",
                     action="store_true")

    sub.add_parser(Commands.RUN_IN_DOCKER.value,
                   help="Run jenkins-plugin-cli ARGS inside the Jenkins Docker image",
                   add_help=False)

    versions = sub.add_parser(Commands.PLUGIN_VERSIONS.value,
                              help="List versions of each PLUGIN")
    mode = versions.add_mutually_exclusive_group()
    for flag, value, text in (
        ("--latest", "latest", "Latest version of PLUGIN"),
        ("--last-secure", "last_secure",
         "Oldest version with no known vulnerability, or your VERSION if newer"),
        ("--next", "next", "Version released after VERSION (or after latest)"),
        ("--prev", "prev", "Version released before VERSION (or before latest)"),
    ):
        mode.add_argument(flag, dest="MODE", action="store_const", const=value, help=text)
    versions.add_argument("PLUGINS", nargs="+", metavar="PLUGIN[:VERSION]")

    vulnerable = sub.add_parser(Commands.IS_VULNERABLE.value,
                                help="Exit 0 if any PLUGIN:VERSION has a known vulnerability")
    vulnerable.add_argument("PLUGINS", nargs="+", metavar="PLUGIN:VERSION")

    resolve = sub.add_parser(Commands.RESOLVE_DEPS.value,
                             help="Resolve the mandatory dependencies of the given plugins")
    resolve.add_argument("--fix",
                         dest="FIX",
                         help="Override conflicting pinned versions instead of failing",
                         action="store_true")
    resolve.add_argument("PLUGINS", nargs="+", metavar="PLUGIN[:VERSION]")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program.

    Arguments after ``run``/``run-in-docker`` that plugdeps does not know are
    passed to the wrapped tool verbatim, in order, as ``TOOL_ARGS``.
    """
    parser = _build_parser()
    args, extras = parser.parse_known_args(argv)
    if args.COMMAND in _TOOL_COMMANDS:
        if extras and extras[0] == "--":
            extras = extras[1:]
        args.TOOL_ARGS = extras
    elif extras:
        parser.error(f"unrecognized arguments: {' '.join(extras)}")
    return args
