"""
Topology Parser Module

This module turns the node-list payload of a "config get cluster" reply
into a Topology, and formats a Topology back into that payload.
"""

import logging

from ..exceptions import ProtocolError
from .node import Node, Topology

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = " "
FIELD_SEPARATOR = "|"
FIELDS_PER_RECORD = 3


class TopologyParser:
    """
    Parser for the ElastiCache cluster node list.

    Payload Format:
        <host>|<ip>|<port> [<host>|<ip>|<port> ...]

    Records are separated by a single space, fields by a pipe.

    Constraints:
        - Exactly three fields per record
        - Port: base-10 integer in 1-65535
        - Host and ip: non-empty
        - An empty payload means a cluster without nodes
    """

    def parse(self, raw_line: str) -> Topology:
        """
        Parse a node-list payload into a Topology.

        Args:
            raw_line: The third line of the discovery reply (may be empty)

        Returns:
            Topology with one Node per record, in payload order.

        Raises:
            ProtocolError: If any record is malformed. Nothing is returned
                for the records that did parse.

        Examples:
            >>> topology = TopologyParser().parse("myhost|10.0.0.5|11211")
            >>> topology[0].address
            '10.0.0.5:11211'
        """
        if raw_line == "":
            return Topology.empty()

        nodes = [self._parse_record(record) for record in raw_line.split(RECORD_SEPARATOR)]

        for node in nodes:
            logger.debug(f"Host: {node.host}, IP: {node.ip}, Port: {node.port}, URL: {node.address}")

        return Topology(tuple(nodes))

    def _parse_record(self, record: str) -> Node:
        """
        Parse one "host|ip|port" record.

        Args:
            record: A single space-free record

        Returns:
            The Node described by the record
        """
        fields = record.split(FIELD_SEPARATOR)
        if len(fields) != FIELDS_PER_RECORD:
            raise ProtocolError(
                f"malformed node record {record!r}: expected {FIELDS_PER_RECORD} fields, got {len(fields)}"
            )

        host, ip, raw_port = fields
        if not (raw_port.isascii() and raw_port.isdigit()):
            logger.error(f"Integer conversion: invalid port {raw_port!r}")
            raise ProtocolError(f"invalid port in node record {record!r}")

        try:
            return Node(host=host, ip=ip, port=int(raw_port))
        except ValueError as exc:
            raise ProtocolError(f"invalid node record {record!r}", cause=exc) from exc

    def format(self, topology: Topology) -> str:
        """
        Format a Topology back into a node-list payload.

        Examples:
            >>> TopologyParser().format(Topology((Node("h", "10.0.0.1", 11211),)))
            'h|10.0.0.1|11211'
        """
        return RECORD_SEPARATOR.join(
            FIELD_SEPARATOR.join((node.host, node.ip, str(node.port))) for node in topology
        )


_parser = TopologyParser()


def parse_topology(raw_line: str) -> Topology:
    """Parse a node-list payload with the default parser."""
    return _parser.parse(raw_line)


def format_topology(topology: Topology) -> str:
    """Format a Topology with the default parser."""
    return _parser.format(topology)
