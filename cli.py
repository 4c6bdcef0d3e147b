#!/usr/bin/env python3
"""
CLI script for running scenario campaigns against a custody validator.

Generates labelled transaction sequences for the hot/cold delegate
custody contract, optionally checks each one against a validator, and
prints a coverage report of which rejection branches were exercised.

Usage:
    python cli.py
    python cli.py --config campaign.json --examples 500
    python cli.py --validator my_contract.offchain:CustodyValidator --seed 42
    python cli.py --json-output
"""

import argparse
import json
import logging
import sys
import uuid
from typing import Optional

from config.loader import ConfigurationManager
from config.models import Config
from core.exceptions import ConfigurationError, CustodyGeneratorError, ScenarioMismatchError
from core.logging import configure_logging
from harness.campaign import run_campaign, run_coverage
from harness.coverage import CoverageTracker
from harness.validator import load_validator


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Custody Scenario Generator - validator test campaigns",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Coverage of the generator alone, with default configuration
  python cli.py

  # Run with custom config file
  python cli.py --config /path/to/campaign.json

  # Judge a validator over 1000 scenarios, reproducibly
  python cli.py --validator my_contract.offchain:CustodyValidator --examples 1000 --seed 7

  # Machine-readable report
  python cli.py --json-output --quiet
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to JSON configuration file (default: built-in defaults)"
    )

    parser.add_argument(
        "--env-file", "-e",
        type=str,
        default="./.env",
        help="Path to .env file (default: ./.env)"
    )

    parser.add_argument(
        "--examples", "-n",
        type=int,
        help="Number of scenarios to generate (overrides config)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for a reproducible campaign (overrides config)"
    )

    parser.add_argument(
        "--validator",
        type=str,
        help="Validator to judge, as module:attribute (overrides config)"
    )

    parser.add_argument(
        "--max-steps",
        type=int,
        help="Discard scenarios longer than this many transactions"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors"
    )

    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Output the coverage report as JSON to stdout"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and validator path without generating"
    )

    return parser.parse_args(argv)


def load_configuration(config_path: Optional[str], env_file: str, args: argparse.Namespace) -> Config:
    """Load configuration and apply command line overrides.

    Args:
        config_path: Path to JSON config file, if any.
        env_file: Path to .env file.
        args: Parsed command line arguments.

    Returns:
        Validated Config object.
    """
    config_manager = ConfigurationManager(config_path=config_path, env_file=env_file)
    config = config_manager.load_config()

    overrides = {
        "examples": args.examples,
        "seed": args.seed,
        "validator": args.validator,
        "max_steps": args.max_steps,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        campaign = config.campaign.model_dump()
        campaign.update(overrides)
        config = Config(
            weights=config.weights,
            campaign=campaign,
            logging=config.logging,
        )
    return config


def print_report(
    tracker: CoverageTracker,
    campaign_id: str,
    validator: Optional[str],
    balanced: bool,
    failure: Optional[dict] = None,
    json_output: bool = False,
) -> None:
    """Print the coverage report to the console."""
    if json_output:
        results = {
            "campaign_id": campaign_id,
            "validator": validator,
            "success": failure is None,
            "balanced": balanced,
            "failure": failure,
            "coverage": tracker.to_dict(),
        }
        print(json.dumps(results, indent=2, default=str))
        return

    print("\n" + "=" * 60)
    print("SCENARIO COVERAGE")
    print("=" * 60)
    print(f"Campaign ID: {campaign_id}")
    print(f"Validator: {validator or 'none (coverage only)'}")
    print(f"Status: {'SUCCESS' if failure is None else 'FAILED'}")
    print(tracker.render())
    if not balanced:
        print("\nWarning: accept/reject classes are imbalanced")
    if failure is not None:
        print("\nFailure:")
        print(f"  {failure['message']}")
    print("=" * 60 + "\n")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code (0 for success, 1 for failure, 130 when interrupted).
    """
    args = parse_args(argv)

    if args.quiet:
        log_level = "ERROR"
    elif args.verbose:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    configure_logging(
        level=log_level,
        fmt="text",
        service_name="custody-scenario-cli",
        stream=sys.stderr
    )
    logger = logging.getLogger(__name__)

    try:
        config = load_configuration(args.config, args.env_file, args)
        if not args.verbose and not args.quiet:
            configure_logging(
                level=config.logging.level,
                fmt=config.logging.format,
                service_name="custody-scenario-cli",
                stream=sys.stderr
            )

        validator = None
        if config.campaign.validator:
            validator = load_validator(config.campaign.validator)

        if args.dry_run:
            print("Configuration validated successfully!")
            print(f"Examples: {config.campaign.examples}")
            print(f"Seed: {config.campaign.seed}")
            print(f"Max steps: {config.campaign.max_steps}")
            print(f"Validator: {config.campaign.validator or 'none (coverage only)'}")
            return 0

        campaign_id = str(uuid.uuid4())
        failure = None
        if validator is None:
            tracker = run_coverage(config, campaign_id=campaign_id)
        else:
            tracker = CoverageTracker()
            try:
                run_campaign(
                    validator,
                    config,
                    campaign_id=campaign_id,
                    validator_name=config.campaign.validator,
                    tracker=tracker,
                )
            except ScenarioMismatchError as e:
                logger.error(f"Validator disagreed with a scenario: {e.message}")
                failure = e.to_dict()

        balanced = tracker.is_balanced(config.campaign.min_class_ratio)
        if not args.quiet or args.json_output:
            print_report(
                tracker,
                campaign_id,
                config.campaign.validator,
                balanced,
                failure=failure,
                json_output=args.json_output,
            )
        return 0 if failure is None else 1

    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except CustodyGeneratorError as e:
        logger.error(f"Campaign aborted: {e.message}", extra={"details": e.details})
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Campaign interrupted by user")
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
