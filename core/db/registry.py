import importlib
import os


def discover_modules(apps_dir: str, module_name: str) -> list:
    """
    Import ``<apps_dir>.api.<app>.<module_name>`` for every app that ships one.

    Models have to be imported before metadata is used (create_all, alembic),
    and routers before they can be mounted.
    """
    api_package = importlib.import_module(f"{apps_dir}.api")
    modules = []
    for api_path in api_package.__path__:
        for entry in sorted(os.scandir(api_path), key=lambda e: e.name):
            if not entry.is_dir() or entry.name.startswith(("_", ".")):
                continue
            if not os.path.exists(os.path.join(entry.path, f"{module_name}.py")):
                continue
            modules.append(
                importlib.import_module(f"{apps_dir}.api.{entry.name}.{module_name}")
            )
    return modules


def load_models(apps_dir: str = "apps") -> None:
    discover_modules(apps_dir, "models")
