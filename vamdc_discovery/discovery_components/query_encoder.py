"""
Query Encoder - VSS2 predicate and VAMDC-TAP sync URL construction
"""

from decimal import Decimal
from urllib.parse import quote

from .models import QueryParams


QUERY_FIELD = "RadTransWavelength"
QUERY_LANG = "VSS2"
QUERY_REQUEST = "doQuery"
QUERY_FORMAT = "XSAMS"
SYNC_PATH = "sync"


def _format_number(value) -> str:
    # Same text a browser form would send: 4000.0 -> "4000", 1e-05 -> "0.00001",
    # 1e-07 -> "1e-7", 1e21 -> "1e+21"
    if not isinstance(value, float):
        return str(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if 'e' not in text:
        return text
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), 'f')
    mantissa, exponent = text.split('e')
    sign = '-' if exponent.startswith('-') else '+'
    return f"{mantissa}e{sign}{int(exponent.lstrip('+-'))}"


def build_query_predicate(params: QueryParams) -> str:
    """Build the VSS2 range predicate for the requested wavelength window."""
    return (
        f"SELECT * WHERE {QUERY_FIELD} >= {_format_number(params.wavelength_min)} "
        f"AND {QUERY_FIELD} <= {_format_number(params.wavelength_max)}"
    )


def build_probe_url(endpoint_base_url: str, predicate: str) -> str:
    """
    Build the synchronous TAP URL for a node.

    Args:
        endpoint_base_url: Node base URL, ending with '/'
        predicate: VSS2 query text

    Returns:
        Absolute URL that both probes and downloads the XSAMS document
    """
    return (
        f"{endpoint_base_url}{SYNC_PATH}?LANG={QUERY_LANG}&REQUEST={QUERY_REQUEST}"
        f"&FORMAT={QUERY_FORMAT}&QUERY={quote(predicate, safe='')}"
    )
