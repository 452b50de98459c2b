"""Client for the TPMA (teaching practice management) API."""
from tpma.client import TPMAClient
from tpma.exceptions import TPMAError, TPMAConnectionError, TPMAHTTPError, TPMAResponseFormatError
from tpma.request_gate import FetchGate, get_fetch_gate
