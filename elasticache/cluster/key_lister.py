"""
Cluster Key Lister Module

Enumerates the keys held by every node of a memcached cluster using the
"stats items" and "stats cachedump" commands.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import List, Sequence, Set

from ..config.settings import settings
from ..discovery.resolver import split_address
from ..exceptions import NetworkError, ProtocolError

logger = logging.getLogger(__name__)

END_MARKER = "END"
ERROR_PREFIXES = ("ERROR", "CLIENT_ERROR", "SERVER_ERROR")


class ClusterKeyLister:
    """
    Lists the keys stored across a set of memcached nodes.

    Nodes are visited one after another; the first failing node aborts
    the listing.

    Attributes:
        addresses: "ip:port" address of each node to visit
        timeout: Seconds allowed for each connect and each reply
    """

    def __init__(self, addresses: Sequence[str], timeout: float = settings.CLIENT_TIMEOUT):
        self.addresses = list(addresses)
        self.timeout = timeout

    async def list_all_keys(self) -> Set[str]:
        """
        Collect the keys of every node.

        Returns:
            Set of keys seen on any node (empty when there are no nodes)
        """
        keys: Set[str] = set()
        for address in self.addresses:
            keys.update(await self.list_node_keys(address))
        return keys

    async def list_node_keys(self, address: str) -> Set[str]:
        """
        Collect the keys of a single node.

        Args:
            address: "ip:port" of the node

        Raises:
            NetworkError: If the node cannot be reached
            ProtocolError: If the node replies with an error or garbage
        """
        host, port = split_address(address)

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port, limit=settings.READ_BUFFER_SIZE),
                timeout=self.timeout,
            )
        except (OSError, ValueError, OverflowError, asyncio.TimeoutError) as exc:
            # ValueError covers hosts that fail IDNA encoding
            logger.error(f"Failed to connect to node {address}: {exc!r}")
            raise NetworkError(f"failed to connect to {address}", cause=exc) from exc

        try:
            keys: Set[str] = set()
            for slab_id in await self._slab_ids(reader, writer):
                for line in await self._request(reader, writer, f"stats cachedump {slab_id} 0"):
                    # ITEM <key> [<size> b; <expiry> s]
                    parts = line.split()
                    if len(parts) < 2 or parts[0] != "ITEM":
                        raise ProtocolError(f"unexpected cachedump line from {address}: {line!r}")
                    keys.add(parts[1])

            logger.debug(f"Node {address} holds {len(keys)} keys")
            return keys

        except asyncio.TimeoutError as exc:
            logger.error(f"Timeout reading from node {address}")
            raise ProtocolError(f"timed out reading from {address}", cause=exc) from exc
        except (OSError, ValueError) as exc:
            logger.error(f"Error talking to node {address}: {exc!r}")
            raise ProtocolError(f"failed to query {address}", cause=exc) from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug(f"Error closing connection to {address}: {exc!r}")

    async def _slab_ids(self, reader: StreamReader, writer: StreamWriter) -> List[int]:
        """
        Find the slab classes that currently hold items.

        Parses "STAT items:<slab>:number <count>" lines of "stats items".
        """
        slabs = []
        for line in await self._request(reader, writer, "stats items"):
            parts = line.split()
            if len(parts) != 3 or parts[0] != "STAT":
                raise ProtocolError(f"unexpected stats line: {line!r}")

            name = parts[1].split(":")
            if len(name) == 3 and name[0] == "items" and name[2] == "number":
                if int(parts[2]) > 0:
                    slabs.append(int(name[1]))

        return sorted(set(slabs))

    async def _request(self, reader: StreamReader, writer: StreamWriter, command: str) -> List[str]:
        """
        Send a command and read its reply up to the END line.

        Args:
            command: Command without its line terminator

        Returns:
            The reply lines before END, terminators stripped
        """
        writer.write(f"{command}\r\n".encode())
        await writer.drain()

        lines = []
        while True:
            data = await asyncio.wait_for(reader.readline(), timeout=self.timeout)
            if not data:
                raise ProtocolError(f"connection closed during {command!r}")

            line = data.decode().rstrip("\r\n")
            if line == END_MARKER:
                return lines
            if line.startswith(ERROR_PREFIXES):
                raise ProtocolError(f"{command!r} failed: {line}")
            lines.append(line)
