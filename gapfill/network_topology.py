"""
Network topology module.
Holds the station tree as a read-only directed graph.
"""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import networkx as nx

from .errors import DataError


@dataclass(frozen=True)
class Node:
    """A measuring station and its attributes."""

    id: str
    attrs: Dict[str, Any] = field(default_factory=dict)


class Network:
    """
    Directed tree/forest of stations.
    Edges point downstream: every node has any number of inputs and at most
    one output.  Once :meth:`freeze` is called the graph cannot change, which
    makes it safe to query from several threads.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        """
        Initialize an empty network.

        Args:
            base_dir: Directory that relative rendered paths are resolved against
        """
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.graph = nx.DiGraph()
        self.nodes: Dict[str, Node] = {}

    def add_node(self, node: Node) -> None:
        if node.id in self.nodes:
            raise ValueError(f"Duplicate node id {node.id}")
        self.nodes[node.id] = node
        self.graph.add_node(node.id, **node.attrs)

    def add_edge(self, upstream: str, downstream: str) -> None:
        if upstream not in self.nodes or downstream not in self.nodes:
            raise ValueError(f"Undefined nodes in edge {upstream} -> {downstream}")
        if self.graph.out_degree(upstream) > 0:
            current = next(iter(self.graph.successors(upstream)))
            raise ValueError(f"Node {upstream} already flows into {current}")
        self.graph.add_edge(upstream, downstream)

    def freeze(self) -> "Network":
        """Check that the graph is a forest and make it immutable."""
        if not nx.is_directed_acyclic_graph(self.graph):
            cycle = nx.find_cycle(self.graph)
            raise ValueError(f"Network contains a cycle: {cycle}")
        nx.freeze(self.graph)
        return self

    def __contains__(self, node: str) -> bool:
        return node in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def inputs(self, node: str) -> List[str]:
        """Get the direct upstream neighbours of a node."""
        return list(self.graph.predecessors(node))

    def output(self, node: str) -> Optional[str]:
        """Get the downstream neighbour of a node, if any."""
        return next(iter(self.graph.successors(node)), None)

    def order(self) -> List[str]:
        """Get all nodes, upstream ones first."""
        return list(nx.lexicographical_topological_sort(self.graph))

    def raw_attribute(self, node: str, name: str) -> Any:
        if name == "name":
            return node
        return self.nodes[node].attrs.get(name)

    def attribute(self, node: str, name: str) -> Optional[float]:
        """Get a numeric attribute, parsing numeric strings; None if absent."""
        value = self.raw_attribute(node, name)
        if value is None or isinstance(value, bool):
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(value) else value

    def render_path(self, node: str, template: str) -> Path:
        """Render a path template such as ``data/{name}.csv`` for a node."""
        variables = dict(self.nodes[node].attrs, name=node)
        try:
            rendered = template.format_map(variables)
        except (KeyError, IndexError, ValueError) as exc:
            raise DataError(node, "render", f"cannot render {template!r}: {exc}") from exc
        path = Path(rendered)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def get_topology_info(self) -> Dict:
        """Get summary information about the topology."""
        return {
            "num_nodes": self.graph.number_of_nodes(),
            "num_edges": self.graph.number_of_edges(),
            "num_outlets": sum(1 for n in self.graph.nodes() if self.output(n) is None),
            "num_headwaters": sum(1 for n in self.graph.nodes() if not self.inputs(n)),
        }


def build_network(path: Union[str, Path]) -> Network:
    """Load a station network from a JSON file.

    The file must contain a top-level ``nodes`` list whose entries define an
    ``id`` and optionally an ``attrs`` mapping, and an ``edges`` list whose
    entries define ``u`` (upstream node id) and ``v`` (downstream node id).
    Relative data paths rendered later are resolved against the directory of
    the JSON file.

    :param path: Path to the JSON file.
    :returns: A frozen :class:`Network`.
    :raises ValueError: If the topology is malformed.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        topo = json.load(f)
    net = Network(base_dir=path.parent)
    for node_info in topo.get("nodes", []):
        node_id = node_info.get("id")
        if not node_id:
            raise ValueError(f"Node entry must define id: {node_info}")
        attrs = node_info.get("attrs", {})
        if not isinstance(attrs, dict):
            raise ValueError(f"Attributes of node {node_id} must be a mapping")
        net.add_node(Node(id=str(node_id), attrs=dict(attrs)))
    for edge_info in topo.get("edges", []):
        u = edge_info.get("u")
        v = edge_info.get("v")
        if not u or not v:
            raise ValueError(f"Edge entry must define u and v: {edge_info}")
        net.add_edge(str(u), str(v))
    return net.freeze()
