#!/usr/bin/env python3
"""Main entry point for audio activity detection.

Simplified entry point that delegates to the CLI module.

Usage:
    python main.py classify recording.wav          # Detect activities
    python main.py check-mapping --num-classes 521 # Validate the mapping

Or use the CLI directly:
    python -m audio_activity.cli classify recording.wav
"""

import sys
from pathlib import Path


def main():
    """Main entry point - delegates to CLI."""
    # If no arguments, show help
    if len(sys.argv) == 1:
        print(__doc__)
        print("Run 'python main.py --help' for more options")
        sys.exit(0)

    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from audio_activity.cli import main as cli_main
    cli_main()


if __name__ == "__main__":
    main()
