"""CLI entry point for cloudcutter."""

import argparse
import logging
import os

import cloudcutter.io.logging_setup
from cloudcutter.systems import SystemsFactory
from cloudcutter.tui.app import CloudcutterApp

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Terminal browser for cloud resources")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: logging.level setting or INFO)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path (default: timestamped file under logging.directory)",
    )
    args = parser.parse_args(argv)

    if args.log_level:
        os.environ["CLOUDCUTTER_LOG_LEVEL"] = args.log_level
    if args.log_file:
        os.environ["CLOUDCUTTER_LOG_FILE"] = args.log_file

    factory = SystemsFactory(logging.getLogger("cloudcutter"))
    # The terminal belongs to the app; log to file only.
    runtime = cloudcutter.io.logging_setup.configure(factory.logging_config, stream=False)
    logger.info("starting level=%s log_file=%s", runtime.level_name, runtime.file_path)

    app = CloudcutterApp(factory)
    app.run()
    logger.info("stopped")


if __name__ == "__main__":
    main()
