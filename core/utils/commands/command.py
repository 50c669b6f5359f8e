import argparse


class BaseCommand:
    """
    A management command run through ``python scripts.py <name>``.

    Subclasses live in ``scripts/<name>.py`` as ``Command`` and implement the
    async ``handle``; parsed options are passed in as keyword arguments.
    """

    help: str = ""

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        pass

    async def handle(self, **options) -> None:
        raise NotImplementedError("Commands must implement handle()")
