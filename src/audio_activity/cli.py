"""CLI entry point for audio activity detection.

Usage:
    audio-activity classify FILE [FILE ...] [--config PATH] [--json] [--debug]
    audio-activity check-mapping [PATH] [--config PATH] [--num-classes N]
"""

import argparse
import dataclasses
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _load_settings(args):
    from .constants import AudioActivityConfig

    config = AudioActivityConfig.from_file(args.config)
    overrides = {}
    if getattr(args, "model", None):
        overrides["model_path"] = args.model
    if getattr(args, "mapping", None):
        overrides["mapping_path"] = args.mapping
    if getattr(args, "threshold", None) is not None:
        overrides["default_threshold"] = args.threshold
    return dataclasses.replace(config, **overrides)


def cmd_classify(args):
    """Classify WAV files."""
    from .classifier import AudioActivityClassifier

    config = dataclasses.replace(_load_settings(args), enabled=True)

    with AudioActivityClassifier(config) as classifier:
        if not classifier.is_ready():
            logger.error(f"Model not available: {config.model_path}")
            sys.exit(1)

        results = {}
        for path in args.files:
            results[path] = classifier.classify_file(path)

    if args.json:
        print(json.dumps(results, indent=2, sort_keys=True))
        return

    for path, activities in results.items():
        if not activities:
            logger.info(f"{path}: no activity detected")
            continue
        ranked = sorted(activities.items(), key=lambda item: item[1], reverse=True)
        summary = ", ".join(f"{label} ({conf:.0%})" for label, conf in ranked)
        logger.info(f"{path}: {summary}")


def cmd_check_mapping(args):
    """Load a mapping file and report problems."""
    from .mapping import ActivityMappingTable
    from .reconciler import ActivityVocabulary

    config = _load_settings(args)
    path = args.path or config.mapping_path

    try:
        table = ActivityMappingTable.load(path, config.default_threshold)
    except OSError as e:
        logger.error(f"Could not read mapping: {e}")
        sys.exit(1)

    vocabulary = ActivityVocabulary(args.activities or config.activities)
    unknown = sorted(label for label in table.activities() if label not in vocabulary)
    problems = table.skipped_records + len(unknown)

    logger.info(f"{len(table)} raw classes, {table.entry_count} entries")
    if table.skipped_records:
        logger.warning(f"{table.skipped_records} malformed record(s) skipped")
    if unknown:
        logger.warning(f"Unknown activity labels: {', '.join(unknown)}")
    if args.num_classes is not None:
        out_of_range = table.out_of_range(args.num_classes)
        if out_of_range:
            logger.warning(f"Raw class indices out of range: {out_of_range}")
            problems += len(out_of_range)

    if problems:
        sys.exit(1)
    logger.info("✓ Mapping is consistent")


def main(argv=None):
    """Main entry point for the audio activity CLI."""
    parser = argparse.ArgumentParser(
        description="Audio activity detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Classify command
    classify_parser = subparsers.add_parser("classify", help="Classify WAV files")
    classify_parser.add_argument("files", nargs="+", help="WAV files to analyse")
    classify_parser.add_argument("--model", type=str, help="Model path override")
    classify_parser.add_argument("--mapping", type=str, help="Mapping path override")
    classify_parser.add_argument(
        "--threshold", type=float, help="Default threshold override"
    )
    classify_parser.add_argument("--json", action="store_true", help="JSON output")

    # Check-mapping command
    check_parser = subparsers.add_parser("check-mapping", help="Validate a mapping file")
    check_parser.add_argument("path", nargs="?", help="Mapping file (config default)")
    check_parser.add_argument(
        "--num-classes", type=int, help="Model output width to check indices against"
    )
    check_parser.add_argument(
        "--activities", nargs="+", help="Recognized activity labels"
    )

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "classify":
        cmd_classify(args)
    elif args.command == "check-mapping":
        cmd_check_mapping(args)


if __name__ == "__main__":
    main()
