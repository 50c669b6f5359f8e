import os
import sys

from apps.settings import settings
from core.logging import configure_logging
from core.utils.commands.script_runner import ScriptRunner

COMMANDS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "scripts")

if __name__ == "__main__":
    runner = ScriptRunner(commands_folder=COMMANDS_DIR)
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print("Usage: python scripts.py <command> [options]")
        print(f"Commands: {', '.join(runner.available_commands())}")
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL)
    runner.run(sys.argv[1], sys.argv[2:])
