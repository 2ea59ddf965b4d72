"""
SQL Server Reporting Services administration helpers.

A thin wrapper over the ReportService2005 SOAP endpoint:
- Browse and search the report catalog
- Publish, delete, move and export RDL report definitions
- Inspect and rebind shared data sources

Example Usage:
    from ssrs_admin import ReportServerClient, ReportServerConfig, catalog

    config = ReportServerConfig.from_env()

    with ReportServerClient.from_config(config) as proxy:
        for item in catalog.list_children(proxy, "/Sales"):
            print(item.path, item.type.value)
"""

__version__ = '1.0.0'

# Configuration
from .config import ReportServerConfig

# SOAP client
from .soap_client import ReportServerClient

# Exceptions
from .exceptions import (
    ReportServerError,
    SOAPFaultError,
    ItemNotFoundError,
    ItemAlreadyExistsError,
)

# Models
from .models import CatalogItem, DataSource, ItemType, ReportWarning

# Paths
from .paths import ROOT, normalize_path, split_path, join_path

# Catalog operations
from . import catalog
from .catalog import (
    list_children,
    find_items,
    item_exists,
    create_folder,
    publish_report,
    publish_folder,
    delete_item,
    move_item,
    export_report,
    export_folder,
    get_data_sources,
    set_data_source,
)


__all__ = [
    # Version
    '__version__',

    # Configuration
    'ReportServerConfig',

    # SOAP client
    'ReportServerClient',

    # Exceptions
    'ReportServerError',
    'SOAPFaultError',
    'ItemNotFoundError',
    'ItemAlreadyExistsError',

    # Models
    'CatalogItem',
    'DataSource',
    'ItemType',
    'ReportWarning',

    # Paths
    'ROOT',
    'normalize_path',
    'split_path',
    'join_path',

    # Catalog operations
    'catalog',
    'list_children',
    'find_items',
    'item_exists',
    'create_folder',
    'publish_report',
    'publish_folder',
    'delete_item',
    'move_item',
    'export_report',
    'export_folder',
    'get_data_sources',
    'set_data_source',
]
