# src/apkresolver/menu_apps.py

from typing import List, Optional

from pick import pick

from apkresolver.log_utils import logger
from apkresolver.resolve.catalog import AppCatalog, CatalogEntry


def _option_label(entry: CatalogEntry) -> str:
    max_age = entry.descriptor.max_age_days
    policy = f"max {max_age}d" if max_age is not None else "no age policy"
    return f"{entry.app_id}  ({entry.descriptor.display_name}, {policy})"


def select_apps(catalog: AppCatalog) -> Optional[List[str]]:
    """
    Present an interactive multi-select prompt of cataloged applications.

    Parameters:
        catalog (AppCatalog): Catalog whose applications are offered.

    Returns:
        list[str] or None: Selected app ids in catalog order, or None if nothing was selected.
    """
    title = """Select the applications to check (press SPACE to select, ENTER to confirm):"""
    entries = list(catalog)
    options = [_option_label(entry) for entry in entries]
    selected_options = pick(
        options, title, multiselect=True, min_selection_count=0, indicator="*"
    )
    selected_indexes = sorted(index for _, index in selected_options)
    if not selected_indexes:
        print("No applications selected.")
        return None
    return [entries[index].app_id for index in selected_indexes]


def run_menu(catalog: AppCatalog) -> Optional[List[str]]:
    """
    Prompt for applications to check and return the selection.

    Returns None if the user selects nothing or the prompt cannot run (errors are logged).
    """
    try:
        return select_apps(catalog)
    except (OSError, RuntimeError, ValueError):
        logger.exception("Application menu failed")
        return None
