"""
Site preparation steps run before a migration.
"""

import logging
from typing import Dict, List, Tuple

from shopp_migrator.core.wp_client import WPClient
from shopp_migrator.core.wp_database import WordPressDatabase

logger = logging.getLogger(__name__)

# (plugin file without .php, display name)
REQUIRED_PLUGINS: List[Tuple[str, str]] = [
    ("shopp/Shopp", "Shopp"),
    ("woocommerce/woocommerce", "WooCommerce"),
]

TRASH_BATCH = 1000


def install_plugins(wp: WPClient, plugins: List[Tuple[str, str]] = REQUIRED_PLUGINS) -> Dict[str, str]:
    """
    Ensure each plugin is installed and active.

    Returns:
        {plugin: "already active" | "activated" | "installed"}

    Raises:
        WordPressError: If listing, installing or activating fails.
    """
    installed = {item["plugin"]: item for item in wp.list_plugins()}
    actions = {}

    for plugin, name in plugins:
        current = installed.get(plugin)
        if current and current.get("status") == "active":
            logger.info(f"{name} is already active.")
            actions[plugin] = "already active"
        elif current:
            wp.activate_plugin(plugin)
            logger.info(f"{name} has been activated.")
            actions[plugin] = "activated"
        else:
            wp.install_plugin(plugin.split("/")[0], activate=True)
            logger.info(f"{name} has been installed and activated.")
            actions[plugin] = "installed"

    return actions


def empty_trash(db: WordPressDatabase, limit: int = TRASH_BATCH) -> int:
    """
    Permanently delete trashed posts of any type, up to limit.

    Returns:
        Number of posts deleted
    """
    deleted = 0
    for post_id in db.trashed_post_ids(limit=limit):
        if db.delete_post(post_id):
            deleted += 1

    noun = "item was" if deleted == 1 else "items were"
    logger.info(f"{deleted} trashed {noun} permanently deleted.")
    return deleted
