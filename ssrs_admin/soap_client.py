"""
Report Server SOAP Client Module

SOAP client for the SQL Server Reporting Services ReportService2005 endpoint.
Exposes one method per remote procedure used by the catalog operations.

Key Features:
- Envelope building for nested parameters (data source lists, base64 definitions)
- HTTP Basic authentication (DOMAIN\\user when a domain is configured)
- Retry logic with exponential backoff for gateway/throttling errors
- SOAP fault detection, with rsItemNotFound / rsItemAlreadyExists mapped to
  dedicated exceptions
- XML response parsing to Python dicts, namespaces stripped

Example Usage:
    from ssrs_admin import ReportServerClient

    with ReportServerClient(
        url="http://reports.example.com/ReportServer",
        username="svc_reports",
        password="password",
        domain="CORP"
    ) as proxy:
        records = proxy.list_children("/Sales", recursive=False)
"""

import base64
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from urllib3.util.retry import Retry

from .data_utils import format_bool
from .exceptions import ERROR_CODE_MAP, ReportServerError, SOAPFaultError

logger = logging.getLogger(__name__)

NAMESPACE = "http://schemas.microsoft.com/sqlserver/2005/06/30/reporting/reportingservices"
SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
ENDPOINT = "ReportService2005.asmx"


class ReportServerClient:
    """
    SOAP proxy for the report server web service.

    Instances hold an HTTP session and are passed as the first argument
    to every function in ssrs_admin.catalog.
    """

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        domain: Optional[str] = None,
        timeout: int = 60,
        retries: int = 3,
        verify_ssl: bool = True
    ):
        """
        Initialize the report server client.

        Args:
            url: Report server URL, either the root (http://host/ReportServer)
                 or the full ReportService2005.asmx endpoint
            username: Account name (without domain)
            password: Account password
            domain: Windows domain, prefixed to the username when set
            timeout: Request timeout in seconds (default: 60 for large definitions)
            retries: Number of retry attempts (default: 3)
            verify_ssl: Verify TLS certificates
        """
        self.endpoint = self._resolve_endpoint(url)
        self.username = f"{domain}\\{username}" if domain and username else username
        self.password = password
        self.timeout = timeout
        self.retries = retries
        self.verify_ssl = verify_ssl

        self.session = self._create_session()

    @classmethod
    def from_config(cls, config) -> 'ReportServerClient':
        """Create a client from a ReportServerConfig."""
        return cls(
            url=config.url,
            username=config.username,
            password=config.password,
            domain=config.domain,
            timeout=config.timeout,
            retries=config.retries,
            verify_ssl=config.verify_ssl,
        )

    @staticmethod
    def _resolve_endpoint(url: str) -> str:
        url = url.strip().rstrip('/')
        if url.lower().endswith('.asmx'):
            return url
        return f"{url}/{ENDPOINT}"

    def _create_session(self) -> requests.Session:
        """
        Create HTTP session with connection pooling and retry logic.

        500 is left out of the retry list: the report server answers every
        SOAP fault with a 500, and those must surface immediately.

        Returns:
            Configured requests.Session
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.retries,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=["POST"],
            backoff_factor=1  # Exponential backoff: 1s, 2s, 4s
        )

        adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=10, pool_maxsize=20)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        if self.username:
            session.auth = HTTPBasicAuth(self.username, self.password or "")
        session.verify = self.verify_ssl

        return session

    # =========================================================================
    # Remote procedures
    # =========================================================================

    def list_children(self, item: str, recursive: bool = False) -> List[Dict[str, Any]]:
        """ListChildren: catalog items under a folder, as CatalogItem records."""
        response = self.call("ListChildren", {"Item": item, "Recursive": recursive})
        return self._find_records(response, "CatalogItem")

    def create_report(
        self,
        report: str,
        parent: str,
        overwrite: bool,
        definition: bytes,
        properties: Optional[Dict[str, str]] = None
    ) -> List[Dict[str, Any]]:
        """CreateReport: publish an RDL definition. Returns Warning records."""
        parameters = {
            "Report": report,
            "Parent": parent,
            "Overwrite": overwrite,
            "Definition": definition,
            "Properties": self._property_list(properties),
        }
        response = self.call("CreateReport", parameters)
        return self._find_records(response, "Warning")

    def create_folder(
        self,
        folder: str,
        parent: str,
        properties: Optional[Dict[str, str]] = None
    ) -> None:
        """CreateFolder: add a folder under parent."""
        self.call("CreateFolder", {
            "Folder": folder,
            "Parent": parent,
            "Properties": self._property_list(properties),
        })

    def delete_item(self, item: str) -> None:
        """DeleteItem: remove a report, folder or data source."""
        self.call("DeleteItem", {"Item": item})

    def move_item(self, item: str, target: str) -> None:
        """MoveItem: move or rename an item. target is the full new path."""
        self.call("MoveItem", {"Item": item, "Target": target})

    def get_report_definition(self, report: str) -> bytes:
        """GetReportDefinition: the raw RDL bytes of a published report."""
        response = self.call("GetReportDefinition", {"Report": report})
        encoded = response.findtext("Definition") or ""
        return base64.b64decode(encoded)

    def get_item_data_sources(self, item: str) -> List[Dict[str, Any]]:
        """GetItemDataSources: data source bindings of a report, as DataSource records."""
        response = self.call("GetItemDataSources", {"Item": item})
        return self._find_records(response, "DataSource")

    def set_item_data_sources(self, item: str, data_sources: List[Dict[str, Any]]) -> None:
        """
        SetItemDataSources: replace data source bindings.

        Args:
            item: Report path
            data_sources: DataSource structures, e.g.
                {"Name": "Main", "DataSourceReference": {"Reference": "/Data Sources/DW"}}
        """
        self.call("SetItemDataSources", {
            "Item": item,
            "DataSources": [{"DataSource": ds} for ds in data_sources],
        })

    # =========================================================================
    # SOAP plumbing
    # =========================================================================

    def call(self, operation: str, parameters: Dict[str, Any]) -> ET.Element:
        """
        Make a SOAP call and return the <operation>Response element.

        Args:
            operation: SOAP operation name (e.g., "ListChildren")
            parameters: Operation parameters; dicts and lists nest, None is omitted

        Returns:
            Response element with namespaces stripped

        Raises:
            SOAPFaultError: If SOAP fault is encountered (or a subclass for known error codes)
            requests.exceptions.RequestException: If HTTP request fails
        """
        envelope = self._build_soap_envelope(operation, parameters)

        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": f"{NAMESPACE}/{operation}"
        }

        logger.debug(f"SOAP {operation} -> {self.endpoint}")
        logger.debug(f"SOAP request envelope:\n{envelope}")

        response = self.session.post(
            self.endpoint,
            data=envelope.encode('utf-8'),
            headers=headers,
            timeout=self.timeout
        )

        # Faults arrive with HTTP 500; report the fault rather than the status
        if response.status_code == 500 and response.content:
            self._raise_for_fault(response.content)

        response.raise_for_status()

        root = ET.fromstring(response.content)
        self._check_soap_fault(root)
        self._strip_namespaces(root)

        result = root.find(f".//{operation}Response")
        if result is None:
            raise ReportServerError(f"Unexpected response for {operation}: no {operation}Response element")
        return result

    def _build_soap_envelope(self, operation: str, parameters: Dict[str, Any]) -> str:
        """
        Build SOAP 1.1 envelope with all parameters.

        Args:
            operation: SOAP operation name
            parameters: Operation parameters

        Returns:
            SOAP XML envelope as string
        """
        param_xml = self._serialize(parameters, indent=6)

        envelope = f"""<?xml version="1.0" encoding="utf-8"?>
<soap:Envelope xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
               xmlns:xsd="http://www.w3.org/2001/XMLSchema"
               xmlns:soap="{SOAP_ENV_NS}">
  <soap:Body>
    <{operation} xmlns="{NAMESPACE}">
{param_xml}    </{operation}>
  </soap:Body>
</soap:Envelope>"""

        return envelope

    def _serialize(self, parameters: Dict[str, Any], indent: int) -> str:
        pad = " " * indent
        xml = ""
        for key, value in parameters.items():
            if value is None:
                continue
            if isinstance(value, dict):
                xml += f"{pad}<{key}>\n{self._serialize(value, indent + 2)}{pad}</{key}>\n"
            elif isinstance(value, list):
                xml += f"{pad}<{key}>\n"
                for entry in value:
                    xml += self._serialize(entry, indent + 2)
                xml += f"{pad}</{key}>\n"
            else:
                xml += f"{pad}<{key}>{self._format_value(value)}</{key}>\n"
        return xml

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, bool):
            return format_bool(value)
        if isinstance(value, (bytes, bytearray)):
            return base64.b64encode(bytes(value)).decode('ascii')
        # Escape XML special characters
        return str(value).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    @staticmethod
    def _property_list(properties: Optional[Dict[str, str]]) -> Optional[List[Dict[str, Any]]]:
        if not properties:
            return None
        return [{"Property": {"Name": name, "Value": value}} for name, value in properties.items()]

    def _find_records(self, root: ET.Element, tag: str) -> List[Dict[str, Any]]:
        """Convert every <tag> element below root into a dict record."""
        records = []
        for elem in root.findall(f".//{tag}"):
            record = self._element_to_record(elem)
            if isinstance(record, dict):
                records.append(record)
        return records

    def _element_to_record(self, elem: ET.Element) -> Union[Dict[str, Any], str, None]:
        """
        Convert an element to a dict of child tag -> value.

        Leaf elements become their text; repeated child tags become lists.
        """
        children = list(elem)
        if not children:
            return elem.text

        record: Dict[str, Any] = {}
        for child in children:
            value = self._element_to_record(child)
            if child.tag in record:
                existing = record[child.tag]
                if not isinstance(existing, list):
                    record[child.tag] = [existing]
                record[child.tag].append(value)
            else:
                record[child.tag] = value
        return record

    def _strip_namespaces(self, root: ET.Element) -> None:
        """
        Remove XML namespaces from all elements in-place.

        Args:
            root: XML root element
        """
        for elem in root.iter():
            if "}" in elem.tag:
                elem.tag = elem.tag.split("}", 1)[1]

    def _raise_for_fault(self, content: bytes) -> None:
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            return
        self._check_soap_fault(root)

    def _check_soap_fault(self, root: ET.Element) -> None:
        """
        Check for SOAP fault and raise exception if found.

        Args:
            root: XML root element

        Raises:
            SOAPFaultError: If SOAP fault is present. ItemNotFoundError and
                ItemAlreadyExistsError for the matching report server error codes.
        """
        fault = root.find(f".//{{{SOAP_ENV_NS}}}Fault")

        if fault is None:
            return

        # Try to find faultcode and faultstring with and without namespace
        faultcode = fault.findtext(f"{{{SOAP_ENV_NS}}}faultcode")
        if not faultcode:
            faultcode = fault.findtext("faultcode", "Unknown")

        faultstring = fault.findtext(f"{{{SOAP_ENV_NS}}}faultstring")
        if not faultstring:
            faultstring = fault.findtext("faultstring", "Unknown error")

        # <detail><ErrorCode xmlns="http://www.microsoft.com/sql/reportingservices">
        error_code = None
        for elem in fault.iter():
            if elem.tag == "ErrorCode" or elem.tag.endswith("}ErrorCode"):
                error_code = (elem.text or "").strip() or None
                break

        exc_class = ERROR_CODE_MAP.get(error_code)
        if exc_class is not None:
            raise exc_class(faultstring, faultcode=faultcode, faultstring=faultstring, error_code=error_code)

        raise SOAPFaultError(
            f"SOAP Fault [{error_code or faultcode}]: {faultstring}",
            faultcode=faultcode,
            faultstring=faultstring,
            error_code=error_code,
        )

    def close(self):
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
