from datetime import datetime, timedelta, timezone

from ssrs_admin.models import CatalogItem, DataSource, ItemType, ReportWarning


def test_item_type_parse():
    assert ItemType.parse("Report") == ItemType.REPORT
    assert ItemType.parse("linkedreport") == ItemType.LINKED_REPORT
    assert ItemType.parse("data_source") == ItemType.DATA_SOURCE
    assert ItemType.parse(ItemType.FOLDER) == ItemType.FOLDER
    assert ItemType.parse("Dashboard") == ItemType.UNKNOWN
    assert ItemType.parse(None) == ItemType.UNKNOWN


def test_catalog_item_from_record():
    item = CatalogItem.from_record({
        'ID': 'abc',
        'Name': 'Revenue',
        'Path': '/Sales/Revenue',
        'Type': 'Report',
        'Hidden': 'true',
        'Size': '20480',
        'ModifiedDate': '2024-01-15T10:30:00.1234567-05:00',
    })

    assert item.is_report
    assert item.hidden is True
    assert item.size == 20480
    assert item.modified_date == datetime(2024, 1, 15, 10, 30, 0, 123456,
                                          tzinfo=timezone(timedelta(hours=-5)))
    assert item.creation_date is None


def test_data_source_from_record():
    shared = DataSource.from_record({'Name': 'Main', 'DataSourceReference': {'Reference': '/DS/Main'}})
    embedded = DataSource.from_record({'Name': 'Local', 'DataSourceDefinition': {'Extension': 'SQL'}})
    broken = DataSource.from_record({'Name': 'Gone', 'InvalidDataSourceReference': None})

    assert shared.reference == '/DS/Main' and shared.is_shared
    assert embedded.reference is None and not embedded.invalid
    assert broken.invalid


def test_data_source_to_record():
    assert DataSource('Main', '/DS/Main').to_record() == {
        'Name': 'Main',
        'DataSourceReference': {'Reference': '/DS/Main'},
    }


def test_warning_str():
    warning = ReportWarning.from_record({'Code': 'rsOverlappingReportItems', 'Severity': 'Warning',
                                         'Message': 'Items overlap.'})
    assert str(warning) == "[Warning] rsOverlappingReportItems: Items overlap."
