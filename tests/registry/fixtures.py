"""
Registry Test Fixtures

Deterministic transport and canned code units.
Nothing here touches the network.
"""

from typing import Dict, List, Optional, Tuple

from nsregistry import NamespaceRegistry, RegistryConfig
from nsregistry.transport import Transport, TransportResponse


# =============================================================================
# DETERMINISTIC TRANSPORT
# =============================================================================

class StaticTransport(Transport):
    """
    Serves canned (status, text) pairs keyed by URI and records every
    request. Unknown URIs answer `default_status`.
    """

    name = "static"

    def __init__(
        self,
        responses: Optional[Dict[str, Tuple[Optional[int], str]]] = None,
        default_status: int = 404
    ):
        super().__init__(RegistryConfig())
        self.responses = dict(responses or {})
        self.default_status = default_status
        self.requests: List[Tuple[str, str]] = []

    def serve(self, uri: str, text: str, status: Optional[int] = 200):
        self.responses[uri] = (status, text)

    def request(self, method, uri, body=None):
        self.requests.append((method.upper(), uri))
        status, text = self.responses.get(uri, (self.default_status, ""))
        return TransportResponse(uri=uri, status=status, text=text)

    async def request_async(self, method, uri, body=None):
        return self.request(method, uri, body)

    def _request_remote(self, method, uri, body):
        return self.request(method, uri, body)

    async def _request_remote_async(self, method, uri, body):
        return self.request(method, uri, body)

    def count(self, uri: str) -> int:
        return sum(1 for _, requested in self.requests if requested == uri)

    @property
    def uris(self) -> List[str]:
        return [uri for _, uri in self.requests]


def make_registry(
    responses: Optional[Dict[str, Tuple[Optional[int], str]]] = None,
    **config_overrides
) -> Tuple[NamespaceRegistry, StaticTransport]:
    """Registry wired to a fresh StaticTransport."""
    transport = StaticTransport(responses)
    registry = NamespaceRegistry(
        config=RegistryConfig(**config_overrides),
        transport=transport
    )
    return registry, transport


class EventRecorder:
    """Listener that keeps a copy of every payload it receives."""

    def __init__(self):
        self.events: List[dict] = []

    def __call__(self, properties):
        self.events.append(dict(properties))

    @property
    def names(self) -> List[str]:
        return [event['event'] for event in self.events]

    @property
    def identifiers(self) -> List[object]:
        return [event['identifier'] for event in self.events]


# =============================================================================
# CODE UNITS
# =============================================================================

UNIT_SLUGIFY = '''
def _slugify(text):
    return text.strip().lower().replace(" ", "-")

__registry__.namespace("app.util.slugify", _slugify)
'''

UNIT_APP_UI = '''
__registry__.namespace("app.ui.button", {"label": "OK", "width": 80})
'''

UNIT_A_B = '''
__registry__.namespace("a.b.c", {"value": 3})
'''

UNIT_WITHOUT_TARGET = '''
defined_elsewhere = True
'''

UNIT_RAISING = '''
raise RuntimeError("unit failed")
'''
