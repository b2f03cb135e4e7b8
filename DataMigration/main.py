import argparse
import json
import re
import signal
import sys
from typing import Any, Dict, List, Optional

from cancellation import CancelToken
from console_utils import print_error, print_success, print_verbose, print_warning, prompt_active
from database_filter import exclude, has_prefix
from errors import MigrationCancelled, MigrationError
from import_config import DEFAULT_BATCH_SIZE, DEFAULT_PING_TIMEOUT, ImportConfig, default_parallelism
from importer import Importer, ImportStatus
from json_parser import JsonParser
from mongo_driver import MongoDriver

DEFAULT_SOURCE_URI = "mongodb://127.0.0.1:27017"
DEFAULT_TARGET_URI = "mongodb://127.0.0.1:27018"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

DEFAULTS = {
    "source": DEFAULT_SOURCE_URI,
    "target": DEFAULT_TARGET_URI,
    "prefix": "",
    "exclude": [],
    "drop": False,
    "skip_confirm": False,
    "parallel": None,
    "batch_size": DEFAULT_BATCH_SIZE,
    "create_indexes": True,
    "ping_timeout": DEFAULT_PING_TIMEOUT,
    "verbose": False,
}


def build_parser() -> argparse.ArgumentParser:
    # Every default is None so that explicit flags can be told apart from
    # values coming from --config-file.
    parser = argparse.ArgumentParser(description="Copy all databases from one MongoDB cluster to another")
    parser.add_argument("-s", "--source", default=None, help=f"Source MongoDB URI (default: {DEFAULT_SOURCE_URI})")
    parser.add_argument("-t", "--target", default=None, help=f"Target MongoDB URI (default: {DEFAULT_TARGET_URI})")
    parser.add_argument("--prefix", default=None, help="Only import databases whose name starts with this prefix")
    parser.add_argument("--exclude", action="append", default=None, metavar="REGEXP",
                        help="Exclude databases matching this regular expression (repeatable)")
    parser.add_argument("-d", "--drop", action="store_true", default=None, help="Drop target databases before import")
    parser.add_argument("-c", "--confirm", dest="skip_confirm", action="store_true", default=None,
                        help="Don't ask for confirmation")
    parser.add_argument("-p", "--parallel", type=int, default=None,
                        help="Number of databases imported in parallel (default: number of CPUs)")
    parser.add_argument("-b", "--batch", dest="batch_size", type=int, default=None,
                        help=f"Number of documents per bulk insert (default: {DEFAULT_BATCH_SIZE})")
    parser.add_argument("--no-indexes", dest="create_indexes", action="store_false", default=None,
                        help="Don't recreate indexes on the target")
    parser.add_argument("--ping-timeout", type=float, default=None,
                        help=f"Seconds to wait for each cluster to answer a ping (default: {DEFAULT_PING_TIMEOUT:g})")
    parser.add_argument("--config-file", default=None, help="Path to a JSON file with default options")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Enable verbose output for detailed flow")
    return parser


def resolve_options(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Merge built-in defaults, the optional configuration file and explicit
    command line flags, in that order of precedence (lowest first).
    """
    options = dict(DEFAULTS)
    if args.config_file:
        with open(args.config_file, 'r', encoding='utf-8') as config_file:
            json_config = json.load(config_file)
        options.update(JsonParser(json_config, bool(args.verbose)).parse_json())
    for key in DEFAULTS:
        value = getattr(args, key, None)
        if value is not None:
            options[key] = value
    if options["parallel"] is None:
        options["parallel"] = default_parallelism()
    return options


def build_config(options: Dict[str, Any]) -> ImportConfig:
    """
    :raises re.error: If an exclude pattern is not a valid regular expression.
    """
    filters = []
    if options["prefix"]:
        filters.append(has_prefix(options["prefix"]))
    if options["exclude"]:
        filters.append(exclude(*[re.compile(p) for p in options["exclude"]]))
    return ImportConfig(
        filters=tuple(filters),
        drop=options["drop"],
        skip_confirm=options["skip_confirm"],
        batch_size=options["batch_size"],
        parallel=options["parallel"],
        create_indexes=options["create_indexes"],
        ping_timeout=options["ping_timeout"],
        verbose=options["verbose"],
    )


def install_signal_handlers(token: CancelToken) -> None:
    def handle_signal(signum, frame):
        print_warning(f"Received signal {signum}. Cancelling import...")
        token.cancel(f"signal {signum}")
        # input() only returns once an exception interrupts it
        if prompt_active():
            raise KeyboardInterrupt

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        options = resolve_options(args)
    except (OSError, ValueError) as e:
        print_error(f"Failed to load configuration: {e}")
        return EXIT_FAILURE

    try:
        config = build_config(options)
    except re.error as e:
        print_error(f"Failed to compile exclude filter ({e.pattern}): {e}")
        return EXIT_FAILURE
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        return EXIT_FAILURE

    verbose = config.verbose
    print_verbose(verbose, "Starting MongoDB Data Migration Tool")
    print_verbose(verbose, f"Source URI: {options['source']}")
    print_verbose(verbose, f"Target URI: {options['target']}")

    token = CancelToken()
    install_signal_handlers(token)

    source = target = None
    try:
        source = MongoDriver.connect(options["source"], "source")
        target = MongoDriver.connect(options["target"], "target")
        result = Importer(source, target).run(config, token)
    except MigrationCancelled as e:
        print_error(f"Import cancelled: {e}")
        return EXIT_INTERRUPTED
    except MigrationError as e:
        scope = f" [{e.namespace}]" if e.namespace else ""
        print_error(f"Failed to do import{scope}: {e}")
        return EXIT_FAILURE
    finally:
        if source is not None:
            source.close()
        if target is not None:
            target.close()

    if result.status == ImportStatus.ABORTED:
        print_warning("Import aborted.")
        return EXIT_FAILURE

    print_success(f"Import done after {result.duration:.2f}s.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
