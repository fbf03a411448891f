"""bundlelist - assemble a deployable bundle list for a launcher project.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import ExitCodes, Constants
from common import properties as props
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_cli_overrides, build_config, build_resolver, load_descriptor
from errors import (
    BundleListError,
    ConfigurationError,
    EntryNotFoundError,
    ExtractionFailedError,
    MalformedBundleListError,
    MetadataUnavailableError,
    ResolutionError,
    RuleDefinitionInvalidError,
    RuleExecutionError,
)
from bundles.engine import BundleListEngine
from bundles.io import dumps as dumps_xml
from installer.resource import config_resources, resources_for

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases
_EXIT_CODES = (
    (ConfigurationError, ExitCodes.INPUT_ERROR),
    (EntryNotFoundError, ExitCodes.INPUT_ERROR),
    (MetadataUnavailableError, ExitCodes.CONNECTION_ERROR),
    (ResolutionError, ExitCodes.RESOLUTION_ERROR),
    (MalformedBundleListError, ExitCodes.FILE_ERROR),
    (ExtractionFailedError, ExitCodes.FILE_ERROR),
    (RuleDefinitionInvalidError, ExitCodes.RULE_ERROR),
    (RuleExecutionError, ExitCodes.RULE_ERROR),
)


def exit_code_for(error):
    """Map an engine error onto its exit code."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCodes.FILE_ERROR


def _output_format(args):
    if args.OUTPUT_FORMAT:
        return args.OUTPUT_FORMAT
    if args.OUTPUT and args.OUTPUT.lower().endswith(".json"):
        return "json"
    return "xml"


def _write_text(path, text):
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding=Constants.FILE_ENCODING) as fh:
        fh.write(text)
    logging.info("Wrote %s", path)


def export_bundle_list(bundle_list, args):
    """Write the bundle list to --output, or stdout when none is given."""
    if _output_format(args) == "json":
        text = json.dumps(bundle_list.to_dict(), indent=2) + "\n"
    else:
        text = dumps_xml(bundle_list)
    if args.OUTPUT:
        _write_text(args.OUTPUT, text)
    elif not args.QUIET:
        sys.stdout.write(text)


def export_launcher_config(engine, args):
    """Write merged properties and bootstrap text where requested."""
    if args.PROPERTIES_OUT:
        _write_text(args.PROPERTIES_OUT, props.dumps(engine.get_properties() or {}))
    if args.BOOTSTRAP_OUT:
        _write_text(args.BOOTSTRAP_OUT, engine.get_bootstrap() or "")


def export_resources(engine, resolver, path):
    """Write the installable resource manifest as JSON."""
    resources = resources_for(engine.bundle_list, resolver)
    resources.extend(config_resources(engine.get_config_directory()))
    data = {"resources": [r.to_dict() for r in resources]}
    _write_text(path, json.dumps(data, indent=2) + "\n")


def run(args):
    """Run one build; errors propagate to the caller."""
    descriptor = apply_cli_overrides(args, load_descriptor(args.CONFIG))
    config = build_config(descriptor)
    resolver = build_resolver(descriptor)
    engine = BundleListEngine(config, resolver)

    bundle_list = engine.run()
    export_bundle_list(bundle_list, args)
    export_launcher_config(engine, args)
    if args.RESOURCES_OUT:
        export_resources(engine, resolver, args.RESOURCES_OUT)

    config_dir = engine.get_config_directory()
    if config_dir is not None:
        logging.info("Configuration directory: %s", config_dir)
    return engine


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(
        level="CRITICAL" if args.QUIET else args.LOG_LEVEL,
        logfile=args.LOG_FILE,
    )

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        run(args)
    except BundleListError as exc:
        logging.error("%s", exc)
        return exit_code_for(exc).value
    except OSError as exc:
        logging.error("File couldn't be written to disk: %s", exc)
        return ExitCodes.FILE_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
