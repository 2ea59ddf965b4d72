"""
Shared fixtures: an in-memory stand-in for ReportServerClient.
"""

import uuid

import pytest

from ssrs_admin.exceptions import ItemAlreadyExistsError, ItemNotFoundError
from ssrs_admin.paths import ROOT, join_path, split_path
from ssrs_admin import secrets_vault


class FakeProxy:
    """
    Records every remote call and serves a small in-memory catalog.

    Missing folders fault with ItemNotFoundError the way the report server
    does, so the catalog functions see the same errors as in production.
    """

    def __init__(self):
        self.children = {ROOT: []}
        self.definitions = {}
        self.data_sources = {}
        self.warnings = []
        self.calls = []

    # -- fixture helpers ------------------------------------------------------

    def add(self, path, type_name='Report', definition=b''):
        parent, name = split_path(path)
        self.children.setdefault(parent, []).append({
            'ID': str(uuid.uuid4()),
            'Name': name,
            'Path': path,
            'Type': type_name,
            'ModifiedDate': '2024-01-15T10:30:00.1234567-05:00',
        })
        if type_name == 'Folder':
            self.children.setdefault(path, [])
        if type_name == 'Report':
            self.definitions[path] = definition
        return path

    def calls_to(self, name):
        return [call[1:] for call in self.calls if call[0] == name]

    def _find(self, path):
        parent, _ = split_path(path)
        for record in self.children.get(parent, []):
            if record['Path'] == path:
                return record
        return None

    def _walk(self, folder):
        for record in self.children.get(folder, []):
            yield record
            if record['Type'] == 'Folder':
                yield from self._walk(record['Path'])

    # -- proxy interface ------------------------------------------------------

    def list_children(self, item, recursive=False):
        self.calls.append(('list_children', item, recursive))
        if item not in self.children:
            raise ItemNotFoundError(f"The item '{item}' cannot be found.", error_code='rsItemNotFound')
        if recursive:
            return [dict(r) for r in self._walk(item)]
        return [dict(r) for r in self.children[item]]

    def create_report(self, report, parent, overwrite, definition, properties=None):
        self.calls.append(('create_report', report, parent, overwrite, definition))
        path = join_path(parent, report)
        if self._find(path) is None:
            self.add(path, 'Report')
        self.definitions[path] = definition
        return list(self.warnings)

    def create_folder(self, folder, parent, properties=None):
        self.calls.append(('create_folder', folder, parent))
        path = join_path(parent, folder)
        if self._find(path) is not None:
            raise ItemAlreadyExistsError(f"The item '{path}' already exists.", error_code='rsItemAlreadyExists')
        self.add(path, 'Folder')

    def delete_item(self, item):
        self.calls.append(('delete_item', item))
        parent, _ = split_path(item)
        self.children[parent] = [r for r in self.children[parent] if r['Path'] != item]

    def move_item(self, item, target):
        self.calls.append(('move_item', item, target))
        record = self._find(item)
        parent, _ = split_path(item)
        self.children[parent].remove(record)
        self.add(target, record['Type'], self.definitions.pop(item, b''))

    def get_report_definition(self, report):
        self.calls.append(('get_report_definition', report))
        if report not in self.definitions:
            raise ItemNotFoundError(f"The item '{report}' cannot be found.", error_code='rsItemNotFound')
        return self.definitions[report]

    def get_item_data_sources(self, item):
        self.calls.append(('get_item_data_sources', item))
        if self._find(item) is None:
            raise ItemNotFoundError(f"The item '{item}' cannot be found.", error_code='rsItemNotFound')
        return [dict(r) for r in self.data_sources.get(item, [])]

    def set_item_data_sources(self, item, data_sources):
        self.calls.append(('set_item_data_sources', item, data_sources))


@pytest.fixture
def proxy():
    """Catalog with /Sales (two reports, a subfolder) and a shared data source."""
    fake = FakeProxy()
    fake.add('/Sales', 'Folder')
    fake.add('/Sales/Revenue', 'Report', b'<Report>revenue</Report>')
    fake.add('/Sales/Revenue by Region', 'Report', b'<Report>region</Report>')
    fake.add('/Sales/Archive', 'Folder')
    fake.add('/Sales/Archive/Revenue 2019', 'Report', b'<Report>2019</Report>')
    fake.add('/Finance', 'Folder')
    fake.add('/Data Sources', 'Folder')
    fake.add('/Data Sources/Warehouse', 'DataSource')
    fake.data_sources['/Sales/Revenue'] = [
        {'Name': 'Main', 'DataSourceReference': {'Reference': '/Data Sources/Legacy'}},
        {'Name': 'Lookup', 'DataSourceDefinition': {'ConnectString': 'Data Source=.'}},
    ]
    return fake


@pytest.fixture
def rdl_file(tmp_path):
    path = tmp_path / "Quarterly.rdl"
    path.write_bytes(b'<?xml version="1.0"?><Report>quarterly</Report>')
    return path


@pytest.fixture(autouse=True)
def fresh_vault(monkeypatch, tmp_path):
    """Isolate every test from any real .vault directory."""
    secrets_vault.reset_vault()
    monkeypatch.chdir(tmp_path)
    yield
    secrets_vault.reset_vault()
