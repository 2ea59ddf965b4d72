"""
Report Catalog Operations

Stateless functions over a ReportServerClient (the proxy). Each one
normalizes its path arguments, checks existence with a ListChildren search
where needed, then forwards to a single remote procedure.

Key Features:
- Name search with exact or prefix matching (find_items)
- Existence checks built on the search (item_exists)
- Publish / unpublish / move / export of RDL report definitions
- Read and rebind shared data sources

Example Usage:
    from ssrs_admin import ReportServerClient, ReportServerConfig, catalog

    proxy = ReportServerClient.from_config(ReportServerConfig.from_env())

    warnings = catalog.publish_report(proxy, "reports/Revenue.rdl", "/Sales", overwrite=True)
    catalog.set_data_source(proxy, "/Sales/Revenue", "Main", "/Data Sources/Warehouse")
    catalog.export_report(proxy, "/Sales/Revenue", "backup/")
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from .exceptions import ItemAlreadyExistsError, ItemNotFoundError
from .models import CatalogItem, DataSource, ItemType, ReportWarning
from .paths import ROOT, is_root, join_path, normalize_path, split_path

logger = logging.getLogger(__name__)

RDL_SUFFIX = ".rdl"

ItemTypeArg = Optional[Union[ItemType, str]]


# =============================================================================
# Search
# =============================================================================

def list_children(proxy, folder: str = ROOT, recursive: bool = False) -> List[CatalogItem]:
    """
    List catalog items under a folder.

    Args:
        proxy: ReportServerClient
        folder: Catalog folder path (backslashes accepted)
        recursive: Include items in subfolders

    Returns:
        List of CatalogItem

    Raises:
        ItemNotFoundError: If the folder does not exist
    """
    folder = normalize_path(folder)
    records = proxy.list_children(folder, recursive)
    logger.debug(f"ListChildren {folder} (recursive={recursive}): {len(records)} items")
    return [CatalogItem.from_record(record) for record in records]


def find_items(
    proxy,
    name: str,
    folder: str = ROOT,
    recursive: bool = True,
    exact: bool = False,
    item_type: ItemTypeArg = None
) -> List[CatalogItem]:
    """
    Search a folder for items by name.

    Names are compared case-insensitively, as the report server does.
    Without exact, any item whose name starts with name matches.

    Args:
        proxy: ReportServerClient
        name: Item name, or name prefix
        folder: Folder to search
        recursive: Search subfolders too
        exact: Require the whole name to match
        item_type: Only return items of this type

    Returns:
        Matching CatalogItems in listing order
    """
    pattern = re.compile(f"^{re.escape(name)}{'$' if exact else ''}", re.IGNORECASE)
    wanted = ItemType.parse(item_type) if item_type is not None else None

    return [
        item for item in list_children(proxy, folder, recursive)
        if pattern.search(item.name) and (wanted is None or item.type == wanted)
    ]


def item_exists(proxy, path: str, item_type: ItemTypeArg = None) -> bool:
    """
    Check whether a catalog item exists.

    Searches the parent folder for the exact name. A missing parent folder
    means the item does not exist either. The root folder always exists.

    Args:
        proxy: ReportServerClient
        path: Catalog path of the item
        item_type: Also require the item to be of this type

    Returns:
        True if the item exists
    """
    path = normalize_path(path)
    if is_root(path):
        return item_type is None or ItemType.parse(item_type) == ItemType.FOLDER

    parent, name = split_path(path)
    try:
        matches = find_items(proxy, name, folder=parent, recursive=False, exact=True, item_type=item_type)
    except ItemNotFoundError:
        return False
    return len(matches) > 0


def _require(proxy, path: str, item_type: ItemTypeArg = None, label: str = "Item") -> None:
    if not item_exists(proxy, path, item_type):
        raise ItemNotFoundError(f"{label} '{path}' was not found.")


# =============================================================================
# Folders
# =============================================================================

def create_folder(proxy, name: str, parent: str = ROOT) -> str:
    """
    Create a folder.

    Returns:
        Path of the new folder

    Raises:
        ItemNotFoundError: If the parent folder does not exist
        ItemAlreadyExistsError: If an item with that path already exists
    """
    parent = normalize_path(parent)
    _require(proxy, parent, ItemType.FOLDER, label="Folder")

    path = join_path(parent, name)
    if item_exists(proxy, path):
        raise ItemAlreadyExistsError(f"Folder '{path}' already exists.")

    proxy.create_folder(name, parent)
    logger.info(f"Created folder {path}")
    return path


# =============================================================================
# Publish / unpublish / move
# =============================================================================

def publish_report(
    proxy,
    rdl_file: Union[str, Path],
    folder: str,
    name: Optional[str] = None,
    overwrite: bool = False
) -> List[ReportWarning]:
    """
    Publish a local RDL file as a report.

    Args:
        proxy: ReportServerClient
        rdl_file: Local path of the .rdl file
        folder: Target catalog folder
        name: Report name (default: the file name without extension)
        overwrite: Replace an existing report with the same name

    Returns:
        Warnings reported by the server (unresolved data sources, etc.)

    Raises:
        FileNotFoundError: If rdl_file does not exist
        ItemNotFoundError: If the target folder does not exist
        ItemAlreadyExistsError: If the report exists and overwrite is False
    """
    rdl_path = Path(rdl_file)
    if not rdl_path.is_file():
        raise FileNotFoundError(f"Report definition not found: {rdl_path}")

    definition = rdl_path.read_bytes()
    name = name or rdl_path.stem
    folder = normalize_path(folder)
    target = join_path(folder, name)

    _require(proxy, folder, ItemType.FOLDER, label="Folder")
    if not overwrite and item_exists(proxy, target):
        raise ItemAlreadyExistsError(f"Report '{target}' already exists. Use overwrite to replace it.")

    records = proxy.create_report(name, folder, overwrite, definition)
    warnings = [ReportWarning.from_record(record) for record in records]

    logger.info(f"Published {rdl_path} to {target} ({len(definition)} bytes)")
    for warning in warnings:
        logger.warning(f"{target}: {warning}")

    return warnings


def publish_folder(
    proxy,
    local_dir: Union[str, Path],
    folder: str,
    overwrite: bool = False
) -> Dict[str, List[ReportWarning]]:
    """
    Publish every .rdl file of a local directory into one catalog folder.

    Files are published in name order; the first failure stops the run.

    Returns:
        Mapping of published report path -> warnings
    """
    local_path = Path(local_dir)
    if not local_path.is_dir():
        raise FileNotFoundError(f"Directory not found: {local_path}")

    folder = normalize_path(folder)
    results = {}
    for rdl_file in sorted(local_path.glob(f"*{RDL_SUFFIX}")):
        results[join_path(folder, rdl_file.stem)] = publish_report(proxy, rdl_file, folder, overwrite=overwrite)

    logger.info(f"Published {len(results)} reports from {local_path} to {folder}")
    return results


def delete_item(proxy, path: str) -> None:
    """
    Delete (unpublish) a catalog item.

    Raises:
        ValueError: If path is the root folder
        ItemNotFoundError: If the item does not exist
    """
    path = normalize_path(path)
    if is_root(path):
        raise ValueError("Refusing to delete the root folder")

    _require(proxy, path)
    proxy.delete_item(path)
    logger.info(f"Deleted {path}")


def move_item(proxy, path: str, target_folder: str) -> str:
    """
    Move a catalog item into another folder, keeping its name.

    Returns:
        New path of the item

    Raises:
        ItemNotFoundError: If the item or the target folder does not exist
        ItemAlreadyExistsError: If the target folder already holds an item with that name
    """
    path = normalize_path(path)
    target_folder = normalize_path(target_folder)

    _require(proxy, path)
    _require(proxy, target_folder, ItemType.FOLDER, label="Folder")

    _, name = split_path(path)
    destination = join_path(target_folder, name)
    if item_exists(proxy, destination):
        raise ItemAlreadyExistsError(f"Item '{destination}' already exists.")

    proxy.move_item(path, destination)
    logger.info(f"Moved {path} to {destination}")
    return destination


# =============================================================================
# Export
# =============================================================================

def _write_definition(proxy, report_path: str, target: Path) -> Path:
    definition = proxy.get_report_definition(report_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(definition)
    logger.info(f"Exported {report_path} to {target} ({len(definition)} bytes)")
    return target


def export_report(proxy, report_path: str, destination: Union[str, Path]) -> Path:
    """
    Download a report definition to a local .rdl file.

    Args:
        proxy: ReportServerClient
        report_path: Catalog path of the report
        destination: Directory (file is named <report name>.rdl) or target file path

    Returns:
        Path of the written file

    Raises:
        ItemNotFoundError: If the report does not exist
    """
    report_path = normalize_path(report_path)
    _require(proxy, report_path, ItemType.REPORT, label="Report")

    _, name = split_path(report_path)
    dest = Path(destination)
    if dest.is_dir() or str(destination).endswith(('/', '\\')):
        dest = dest / f"{name}{RDL_SUFFIX}"

    return _write_definition(proxy, report_path, dest)


def export_folder(
    proxy,
    folder: str,
    destination: Union[str, Path],
    recursive: bool = False
) -> List[Path]:
    """
    Download every report of a folder.

    With recursive, subfolders are mirrored as local directories.

    Returns:
        Paths of the written files
    """
    folder = normalize_path(folder)
    dest = Path(destination)
    prefix = "" if is_root(folder) else folder

    written = []
    for item in list_children(proxy, folder, recursive):
        if not item.is_report:
            continue
        relative = normalize_path(item.path[len(prefix):]).strip('/')
        subdirs = relative.split('/')[:-1]
        target = dest.joinpath(*subdirs, f"{item.name}{RDL_SUFFIX}")
        written.append(_write_definition(proxy, item.path, target))

    return written


# =============================================================================
# Data sources
# =============================================================================

def get_data_sources(proxy, item_path: str) -> List[DataSource]:
    """
    Get the data sources bound to a report.

    Raises:
        ItemNotFoundError: If the report does not exist
    """
    item_path = normalize_path(item_path)
    records = proxy.get_item_data_sources(item_path)
    return [DataSource.from_record(record) for record in records]


def set_data_source(proxy, item_path: str, data_source_name: str, reference: str) -> None:
    """
    Point one of a report's data sources at a shared data source.

    Args:
        proxy: ReportServerClient
        item_path: Catalog path of the report
        data_source_name: Name of the data source inside the report
        reference: Catalog path of the shared data source

    Raises:
        ItemNotFoundError: If the report, the shared data source, or a data
            source named data_source_name on the report does not exist
    """
    item_path = normalize_path(item_path)
    reference = normalize_path(reference)

    _require(proxy, item_path)
    _require(proxy, reference, ItemType.DATA_SOURCE, label="Data source")

    current = get_data_sources(proxy, item_path)
    matched = next((ds for ds in current if ds.name.lower() == data_source_name.lower()), None)
    if matched is None:
        available = ", ".join(ds.name for ds in current) or "none"
        raise ItemNotFoundError(
            f"'{item_path}' has no data source named '{data_source_name}' (available: {available})."
        )

    proxy.set_item_data_sources(item_path, [DataSource(name=matched.name, reference=reference).to_record()])
    logger.info(f"Set data source {matched.name} of {item_path} to {reference}")
