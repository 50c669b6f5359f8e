import argparse
import asyncio
import importlib.util
import logging
import os
from typing import List

from core.utils.commands.command import BaseCommand

logger = logging.getLogger(__name__)


class ScriptRunner:
    def __init__(self, commands_folder: str = "scripts"):
        self.commands_folder = commands_folder

    def available_commands(self) -> List[str]:
        if not os.path.isdir(self.commands_folder):
            return []
        return sorted(
            name[:-3]
            for name in os.listdir(self.commands_folder)
            if name.endswith(".py") and not name.startswith("_")
        )

    def load_command(self, command_name: str) -> BaseCommand:
        if command_name not in self.available_commands():
            raise SystemExit(
                f"Unknown command '{command_name}'. "
                f"Available: {', '.join(self.available_commands()) or 'none'}"
            )
        # Loaded by path: scripts.py shadows the scripts/ folder as a package.
        path = os.path.join(self.commands_folder, f"{command_name}.py")
        spec = importlib.util.spec_from_file_location(f"_command_{command_name}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        command_class = getattr(module, "Command", None)
        if command_class is None or not issubclass(command_class, BaseCommand):
            raise SystemExit(f"{module.__name__} does not define a Command class")
        return command_class()

    def run(self, command_name: str, argv: List[str]) -> None:
        command = self.load_command(command_name)
        parser = argparse.ArgumentParser(
            prog=f"scripts.py {command_name}", description=command.help
        )
        command.add_arguments(parser)
        options = vars(parser.parse_args(argv))
        logger.debug(f"Running {command_name} with {options}")
        asyncio.run(command.handle(**options))
