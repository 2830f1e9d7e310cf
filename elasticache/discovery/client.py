"""
Discovery Protocol Client Module

Talks to the cluster configuration endpoint over TCP and returns the
node-list line of its "config get cluster" reply.

Reply layout:
    CONFIG cluster 0 <length>
    <config version>
    <host>|<ip>|<port> [<host>|<ip>|<port> ...]
    <blank>
    END
"""

import asyncio
import logging
from asyncio import StreamReader
from typing import Optional

from ..config.settings import settings
from ..exceptions import NetworkError, ProtocolError
from .resolver import split_address

logger = logging.getLogger(__name__)

DISCOVERY_COMMAND = b"config get cluster\r\n"
END_MARKER = "END"

# ElastiCache always lists the nodes on line 3 (1-indexed). The reply has
# no field announcing this, so a change upstream would break the parse.
PAYLOAD_LINE = 3


async def read_topology_line(reader: StreamReader) -> str:
    """
    Read a discovery reply and return its node-list line.

    Lines are consumed up to and including the END line, or until the
    stream ends. Everything except the payload line is discarded.

    Args:
        reader: Stream positioned at the start of the reply

    Returns:
        The payload line without its terminator, or "" when the reply
        ended before reaching line 3.

    Raises:
        ProtocolError: If the stream fails before END is reached
    """
    payload = ""
    count = 0

    try:
        while True:
            data = await reader.readline()
            if not data:
                break

            line = data.decode().rstrip("\r\n")
            count += 1
            if count == PAYLOAD_LINE:
                payload = line
            if line == END_MARKER:
                break
    except (OSError, ValueError) as exc:
        # ValueError covers undecodable bytes and lines over the stream limit
        logger.error(f"Failed reading discovery reply: {exc!r}")
        raise ProtocolError("failed to read discovery reply", cause=exc) from exc

    logger.info(f"ElastiCache nodes found: {payload}")
    return payload


class DiscoveryClient:
    """
    Client for the ElastiCache configuration endpoint.

    Each call opens a fresh connection, sends the discovery command,
    reads the reply and closes the connection again.

    Attributes:
        timeout: Seconds allowed for connecting and, separately, for
            reading the reply. None waits indefinitely.
    """

    def __init__(self, timeout: Optional[float] = settings.DISCOVERY_TIMEOUT):
        self.timeout = timeout

    async def fetch_topology_line(self, endpoint_address: str) -> str:
        """
        Ask the configuration endpoint for the cluster node list.

        Args:
            endpoint_address: "host:port" of the configuration endpoint

        Returns:
            The raw node-list payload ("" if the reply had no third line)

        Raises:
            NetworkError: If the connection cannot be opened
            ProtocolError: If the reply cannot be read
        """
        host, port = split_address(endpoint_address)

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port, limit=settings.READ_BUFFER_SIZE),
                timeout=self.timeout,
            )
        except (OSError, ValueError, OverflowError, asyncio.TimeoutError) as exc:
            # ValueError covers hosts that fail IDNA encoding
            logger.error(f"Socket Dial ({endpoint_address}): {exc!r}")
            raise NetworkError(f"failed to connect to {endpoint_address}", cause=exc) from exc

        try:
            writer.write(DISCOVERY_COMMAND)
            await writer.drain()
            return await asyncio.wait_for(read_topology_line(reader), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error(f"Timeout reading from {endpoint_address}")
            raise ProtocolError(f"timed out reading from {endpoint_address}", cause=exc) from exc
        except OSError as exc:
            logger.error(f"Error talking to {endpoint_address}: {exc!r}")
            raise ProtocolError(f"failed to query {endpoint_address}", cause=exc) from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug(f"Error closing connection to {endpoint_address}: {exc!r}")


async def fetch_topology_line(
        endpoint_address: str,
        timeout: Optional[float] = settings.DISCOVERY_TIMEOUT,
) -> str:
    """
    Convenience function to query a configuration endpoint once.

    Usage:
        payload = await fetch_topology_line("cfg.example.com:11211")
    """
    return await DiscoveryClient(timeout=timeout).fetch_topology_line(endpoint_address)
