"""
Pytest Configuration and Fixtures

This module provides shared fixtures and fake servers for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator, Dict, List, Optional

from elasticache.config.settings import ClientConfig
from elasticache.discovery.parser import TopologyParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


def discovery_reply(payload: str) -> List[str]:
    """Build the lines of a well-formed "config get cluster" reply."""
    return ["CONFIG cluster 0 147", "12", payload, "", "END"]


PAYLOAD = "node1.cache.amazonaws.com|10.0.0.5|11211 node2.cache.amazonaws.com|10.0.0.6|11212"


# ============================================================================
# Fake Servers
# ============================================================================

class FakeConfigEndpoint:
    """
    In-process stand-in for an ElastiCache configuration endpoint.

    Every connection gets `lines` back after its first request line.

    Attributes:
        lines: Reply lines, written with "\\r\\n" terminators
        respond: When False, the endpoint never replies
        raw_reply: Bytes sent instead of `lines` when set
        close_after_reply: Hang up right after replying
        requests: Raw request lines received, in order
        disconnected: Set once a client connection has been closed
    """

    def __init__(
            self,
            lines: Optional[List[str]] = None,
            respond: bool = True,
            close_after_reply: bool = False,
    ):
        self.lines = lines if lines is not None else discovery_reply(PAYLOAD)
        self.respond = respond
        self.close_after_reply = close_after_reply
        self.raw_reply: Optional[bytes] = None
        self.requests: List[bytes] = []
        self.disconnected = asyncio.Event()
        self.port: Optional[int] = None
        self._server: Optional[asyncio.Server] = None

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            self.requests.append(await reader.readline())
            if self.raw_reply is not None:
                writer.write(self.raw_reply)
            elif self.respond:
                writer.write("".join(f"{line}\r\n" for line in self.lines).encode())
            await writer.drain()
            if not self.close_after_reply:
                # Wait for the client to hang up
                await reader.read()
        except ConnectionResetError:
            pass
        finally:
            writer.close()
            self.disconnected.set()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, '127.0.0.1', 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None


class FakeMemcachedNode:
    """
    In-process memcached node answering "stats items" and "stats cachedump".

    Attributes:
        slabs: slab id -> keys stored in that slab
        fail_cachedump: Reply ERROR to cachedump requests
    """

    def __init__(self, slabs: Dict[int, List[str]], fail_cachedump: bool = False):
        self.slabs = slabs
        self.fail_cachedump = fail_cachedump
        self.port: Optional[int] = None
        self._server: Optional[asyncio.Server] = None

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                data = await reader.readline()
                if not data:
                    break

                parts = data.decode().split()
                if parts == ["stats", "items"]:
                    for slab, keys in self.slabs.items():
                        writer.write(f"STAT items:{slab}:number {len(keys)}\r\n".encode())
                        writer.write(f"STAT items:{slab}:age 42\r\n".encode())
                    writer.write(b"END\r\n")
                elif parts[:2] == ["stats", "cachedump"] and not self.fail_cachedump:
                    for key in self.slabs.get(int(parts[2]), []):
                        writer.write(f"ITEM {key} [5 b; 0 s]\r\n".encode())
                    writer.write(b"END\r\n")
                else:
                    writer.write(b"ERROR\r\n")
                await writer.drain()
        except ConnectionResetError:
            pass
        finally:
            writer.close()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, '127.0.0.1', 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeMemcached:
    """Records the calls the facade makes on the memcached client."""

    def __init__(self, addresses: List[str]):
        self.addresses = addresses
        self.set_calls = []
        self.closed = False

    async def set(self, key: bytes, value: bytes, *, flags: int = 0, exptime: int = 0, noreply: bool = False):
        self.set_calls.append((key, value, exptime))

    async def close(self):
        self.closed = True


class FakeMemcachedFactory:
    """Memcached factory keeping every client it created."""

    def __init__(self):
        self.created: List[FakeMemcached] = []

    async def __call__(self, topology, config):
        client = FakeMemcached(topology.addresses)
        self.created.append(client)
        return client


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def parser() -> TopologyParser:
    """Create a TopologyParser instance."""
    return TopologyParser()


@pytest.fixture
def memcached_factory() -> FakeMemcachedFactory:
    return FakeMemcachedFactory()


@pytest_asyncio.fixture
async def endpoint() -> AsyncGenerator[FakeConfigEndpoint, None]:
    """
    Start a configuration endpoint replying with the two-node PAYLOAD.

    Tests may change `lines`, `respond` or `close_after_reply` before
    connecting.
    """
    srv = FakeConfigEndpoint()
    await srv.start()

    yield srv

    await srv.stop()


@pytest.fixture
def endpoint_config(endpoint: FakeConfigEndpoint) -> ClientConfig:
    """ClientConfig pointing at the fake endpoint through a private store."""
    return ClientConfig(
        environ={"ELASTICACHE_ENDPOINT": endpoint.address},
        discovery_timeout=2.0,
    )


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
