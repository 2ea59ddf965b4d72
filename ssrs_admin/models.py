"""
Catalog data models.

Plain dataclasses built from the records returned by ReportServerClient.
Records are dicts keyed by the SOAP element names (Name, Path, Type, ...).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from .data_utils import convert_to_bool, convert_to_int, convert_to_datetime


class ItemType(Enum):
    """Catalog item types (ReportService2005 ItemTypeEnum)."""
    UNKNOWN = "Unknown"
    FOLDER = "Folder"
    REPORT = "Report"
    RESOURCE = "Resource"
    LINKED_REPORT = "LinkedReport"
    DATA_SOURCE = "DataSource"
    MODEL = "Model"

    @classmethod
    def parse(cls, value: Union['ItemType', str, None]) -> 'ItemType':
        """
        Parse an item type from its SOAP name, case-insensitively.

        Unrecognised or missing values map to UNKNOWN.
        """
        if isinstance(value, ItemType):
            return value
        if not value:
            return cls.UNKNOWN
        lowered = str(value).replace('_', '').lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        return cls.UNKNOWN


@dataclass
class CatalogItem:
    """
    A report server catalog entry as returned by ListChildren.

    Attributes:
        id: Item GUID
        name: Item name (last path segment)
        path: Full catalog path (e.g., "/Sales/Monthly Revenue")
        type: Item type
    """
    id: Optional[str]
    name: str
    path: str
    type: ItemType
    description: Optional[str] = None
    hidden: bool = False
    size: Optional[int] = None
    created_by: Optional[str] = None
    creation_date: Optional[datetime] = None
    modified_by: Optional[str] = None
    modified_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'CatalogItem':
        return cls(
            id=record.get('ID'),
            name=record.get('Name') or '',
            path=record.get('Path') or '',
            type=ItemType.parse(record.get('Type')),
            description=record.get('Description'),
            hidden=convert_to_bool(record.get('Hidden')),
            size=convert_to_int(record.get('Size')),
            created_by=record.get('CreatedBy'),
            creation_date=convert_to_datetime(record.get('CreationDate')),
            modified_by=record.get('ModifiedBy'),
            modified_date=convert_to_datetime(record.get('ModifiedDate')),
        )

    @property
    def is_folder(self) -> bool:
        return self.type == ItemType.FOLDER

    @property
    def is_report(self) -> bool:
        return self.type == ItemType.REPORT


@dataclass
class DataSource:
    """
    A data source binding on a report.

    reference is the catalog path of the shared data source, or None when the
    report embeds its own connection definition.
    """
    name: str
    reference: Optional[str] = None
    invalid: bool = False

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'DataSource':
        reference = None
        invalid = False
        ref = record.get('DataSourceReference')
        if isinstance(ref, dict):
            reference = ref.get('Reference')
        elif 'InvalidDataSourceReference' in record:
            invalid = True
        return cls(name=record.get('Name') or '', reference=reference, invalid=invalid)

    @property
    def is_shared(self) -> bool:
        return self.reference is not None

    def to_record(self) -> Dict[str, Any]:
        """Build the SOAP DataSource structure for SetItemDataSources."""
        return {
            'Name': self.name,
            'DataSourceReference': {'Reference': self.reference},
        }


@dataclass
class ReportWarning:
    """A warning returned by CreateReport (e.g., an unresolved data source)."""
    code: Optional[str]
    severity: Optional[str]
    object_name: Optional[str]
    object_type: Optional[str]
    message: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ReportWarning':
        return cls(
            code=record.get('Code'),
            severity=record.get('Severity'),
            object_name=record.get('ObjectName'),
            object_type=record.get('ObjectType'),
            message=record.get('Message') or '',
        )

    def __str__(self) -> str:
        return f"[{self.severity}] {self.code}: {self.message}"
