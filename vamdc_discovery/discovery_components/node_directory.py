"""
Node Directory - Resolve VAMDC-TAP nodes from the registry or a static list

Two interchangeable sources produce the same normalized list of Node records:

- RegistryNodeDirectory sends an XQuery over SOAP to the VAMDC registry and
  keeps the first access URL of every active VAMDC-TAP resource.
- StaticNodeDirectory reads a pre-published JSON/YAML list of nodes from a
  local file or an HTTP(S) URL.
"""

import hashlib
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Optional, Tuple
from xml.sax.saxutils import escape

import requests
import yaml

from .config_helper import DiscoveryConfig, DEFAULT_REGISTRY_URL, DEFAULT_USER_AGENT
from .errors import ResolutionError
from .models import Node

logger = logging.getLogger(__name__)


VAMDC_TAP_CAPABILITY = "ivo://vamdc/std/VAMDC-TAP"

REGISTRY_XQUERY = f"""declare namespace ri='http://www.ivoa.net/xml/RegistryInterface/v1.0';
for $x in //ri:Resource
where $x/capability[@standardID='{VAMDC_TAP_CAPABILITY}']
and $x/@status='active'
return <node><title>{{$x/title/text()}}</title><url>{{string-join($x/capability[@standardID='{VAMDC_TAP_CAPABILITY}']/interface/accessURL/text(), ' ')}}</url></node>"""

SOAP_ENVELOPE = """<?xml version="1.0" encoding="UTF-8"?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:rs="http://www.ivoa.net/wsdl/RegistrySearch/v1.0">
<soapenv:Header/>
<soapenv:Body>
<rs:XQuerySearch>
<rs:xquery>{xquery}</rs:xquery>
</rs:XQuerySearch>
</soapenv:Body>
</soapenv:Envelope>"""

ENDPOINT_KEYS = ("tapEndpoint", "endpointBaseUrl", "endpoint_base_url")


def normalize_endpoint(url: str) -> str:
    """Strip surrounding whitespace and make sure the URL ends with '/'"""
    url = url.strip()
    return url if url.endswith('/') else url + '/'


def make_node_id(index: int, endpoint: str, id_scheme: str = "ordinal") -> str:
    if id_scheme == "hash":
        return "node-" + hashlib.sha1(endpoint.encode('utf-8')).hexdigest()[:12]
    return f"node-{index}"


def build_registry_request() -> str:
    """SOAP XQuerySearch body selecting all active VAMDC-TAP resources"""
    return SOAP_ENVELOPE.format(xquery=escape(REGISTRY_XQUERY))


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def parse_registry_response(document: str) -> List[Tuple[str, List[str]]]:
    """
    Extract (title, candidate URLs) pairs from an XQuerySearch response.

    Elements are matched by local name so the SOAP and registry namespaces
    do not matter. An unparsable document yields no records.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        logger.warning(f"Registry response is not well-formed XML: {e}")
        return []

    records = []
    for element in root.iter():
        if not isinstance(element.tag, str) or _local_name(element.tag) != "node":
            continue
        title = ""
        urls: List[str] = []
        for child in element:
            name = _local_name(child.tag) if isinstance(child.tag, str) else ""
            text = "".join(child.itertext())
            if name == "title":
                title = " ".join(text.split())
            elif name == "url":
                urls.extend(text.split())
        records.append((title, urls))
    return records


def nodes_from_records(records: Iterable[Tuple[str, List[str]]], id_scheme: str = "ordinal") -> List[Node]:
    """Turn registry records into nodes: first URL wins, URL-less records are dropped"""
    nodes: List[Node] = []
    seen = set()
    for title, urls in records:
        if not urls:
            logger.debug(f"Dropping registry record without access URL: {title!r}")
            continue
        if len(urls) > 1:
            logger.debug(f"Registry record {title!r} lists {len(urls)} URLs, using {urls[0]}")
        endpoint = normalize_endpoint(urls[0])
        if endpoint in seen:
            logger.debug(f"Dropping duplicate endpoint {endpoint} ({title!r})")
            continue
        seen.add(endpoint)
        nodes.append(Node(
            id=make_node_id(len(nodes), endpoint, id_scheme),
            name=title or endpoint,
            endpoint_base_url=endpoint
        ))
    return nodes


class RegistryNodeDirectory:
    """Live node directory backed by the VAMDC registry"""

    def __init__(self, registry_url: str = DEFAULT_REGISTRY_URL, timeout: float = 30.0,
                 id_scheme: str = "ordinal", user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        self.registry_url = registry_url
        self.timeout = timeout
        self.id_scheme = id_scheme
        self.user_agent = user_agent
        self._http = session or requests

    def resolve(self) -> List[Node]:
        """
        Query the registry for all active VAMDC-TAP nodes.

        Returns:
            Nodes in registry order, possibly empty

        Raises:
            ResolutionError: registry unreachable or non-success status
        """
        logger.info(f"Querying VAMDC registry at {self.registry_url}")
        try:
            response = self._http.post(
                self.registry_url,
                data=build_registry_request().encode('utf-8'),
                headers={
                    'Content-Type': 'text/xml; charset=utf-8',
                    'SOAPAction': '""',
                    'User-Agent': self.user_agent,
                },
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise ResolutionError(f"Registry request failed: {e}", cause="transport") from e

        if not response.ok:
            raise ResolutionError(
                f"Registry returned HTTP {response.status_code}",
                cause="transport",
                status_code=response.status_code
            )

        nodes = nodes_from_records(parse_registry_response(response.text), self.id_scheme)
        logger.info(f"Registry resolved {len(nodes)} nodes")
        return nodes


class StaticNodeDirectory:
    """Node directory backed by a pre-published JSON or YAML node list"""

    def __init__(self, source: str, timeout: float = 30.0, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        self.source = source
        self.timeout = timeout
        self.user_agent = user_agent
        self._http = session or requests

    def _is_remote(self) -> bool:
        return self.source.startswith(('http://', 'https://'))

    def _read(self) -> str:
        if self._is_remote():
            try:
                response = self._http.get(
                    self.source,
                    headers={'User-Agent': self.user_agent},
                    timeout=self.timeout
                )
            except requests.exceptions.RequestException as e:
                raise ResolutionError(f"Failed to load nodes: {e}", cause="transport") from e
            if not response.ok:
                raise ResolutionError(
                    f"Failed to load nodes: HTTP {response.status_code} {response.reason}",
                    cause="transport",
                    status_code=response.status_code
                )
            return response.text

        try:
            with open(self.source, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise ResolutionError(f"Failed to load nodes: {e}", cause="transport") from e

    def resolve(self) -> List[Node]:
        """
        Load the static node list.

        Raises:
            ResolutionError: source unreachable, or not a list of node records
        """
        logger.info(f"Loading static node list from {self.source}")
        text = self._read()
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ResolutionError(f"Static node list is not valid JSON/YAML: {e}", cause="format") from e

        if data is None:
            data = []
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise ResolutionError("Static node list must be a list of node records", cause="format")

        nodes = self._nodes_from_list(data)
        logger.info(f"Static list resolved {len(nodes)} nodes")
        return nodes

    def _nodes_from_list(self, records: List[Dict[str, Any]]) -> List[Node]:
        nodes: List[Node] = []
        seen = set()
        for index, record in enumerate(records):
            endpoint = next((record[k] for k in ENDPOINT_KEYS if record.get(k)), None)
            if not endpoint:
                logger.warning(f"Dropping static record {index} without endpoint")
                continue
            endpoint = normalize_endpoint(str(endpoint))
            if record.get('id') is not None:
                node_id = str(record['id'])
            else:
                node_id = make_node_id(index, endpoint)
            if node_id in seen:
                logger.warning(f"Dropping static record with duplicate id {node_id}")
                continue
            seen.add(node_id)
            nodes.append(Node(
                id=node_id,
                name=str(record.get('name') or endpoint),
                endpoint_base_url=endpoint
            ))
        return nodes


def create_node_directory(config: DiscoveryConfig, session: Optional[requests.Session] = None):
    """Pick the directory strategy named by the configuration"""
    if config.node_source == "static":
        return StaticNodeDirectory(
            config.static_nodes,
            timeout=config.registry_timeout,
            user_agent=config.user_agent,
            session=session
        )
    return RegistryNodeDirectory(
        registry_url=config.registry_url,
        timeout=config.registry_timeout,
        id_scheme=config.id_scheme,
        user_agent=config.user_agent,
        session=session
    )
