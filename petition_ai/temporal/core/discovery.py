"""Discovery utility for Temporal workflows and activities."""

import importlib
import pkgutil

from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMPONENT_PACKAGES = (
    "petition_ai.temporal.activities",
    "petition_ai.temporal.workflows",
)


def discover_all(packages=COMPONENT_PACKAGES):
    """Import every module under ``packages`` so their registry decorators run."""
    for package_name in packages:
        package = importlib.import_module(package_name)
        for _, mod_name, _ in pkgutil.walk_packages(package.__path__, f"{package_name}."):
            importlib.import_module(mod_name)
            LOGGER.debug(f"Imported Temporal component module: {mod_name}")
    LOGGER.info("All Temporal workflows and activities discovered and registered successfully")
