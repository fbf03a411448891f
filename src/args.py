"""Argument parsing for the bundle list tool."""

import argparse


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bundlelist",
        description=(
            "Assemble a bundle list from a default list, project additions and "
            "exclusions, partial lists from dependencies and rewrite rules"
        ),
        add_help=True,
    )

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to the build descriptor (YAML, YML, or JSON)",
                        action="store",
                        type=str,
                        required=True)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to write the bundle list to (stdout if omitted)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (xml or json). If not specified, inferred from --output extension; defaults to xml.",
                        action="store",
                        type=str.lower,
                        choices=['xml', 'json'])
    parser.add_argument("--properties-out",
                        dest="PROPERTIES_OUT",
                        help="Write the merged launcher properties to this file",
                        action="store",
                        type=str)
    parser.add_argument("--bootstrap-out",
                        dest="BOOTSTRAP_OUT",
                        help="Write the merged bootstrap commands to this file",
                        action="store",
                        type=str)
    parser.add_argument("--resources",
                        dest="RESOURCES_OUT",
                        help="Resolve every bundle and write an installable resource manifest (JSON)",
                        action="store",
                        type=str)

    parser.add_argument("--rules",
                        dest="RULES",
                        help="Rewrite rule file (can be used multiple times; replaces the descriptor's list)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--local-repo",
                        dest="LOCAL_REPO",
                        help="Local artifact repository directory",
                        action="store",
                        type=str)
    parser.add_argument("--remote",
                        dest="REMOTES",
                        help="Remote repository URL (can be used multiple times; replaces the descriptor's list)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--no-default-bundles",
                        dest="NO_DEFAULT_BUNDLES",
                        help="Do not start from the default bundle list",
                        action="store_true")

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
