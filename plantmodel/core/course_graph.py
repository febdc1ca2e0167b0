"""Driving course graph built from a system model.

Points become nodes and paths become directed edges. A path contributes an
edge in its travel direction when its maximum velocity is not zero and an
edge in the opposite direction when its maximum reverse velocity is not zero.
Locked paths are not travelled and contribute no edges.

Edge attributes:
    path    - name of the path
    reverse - True for the edge travelled backwards
    weight  - routing cost
    length  - path length in mm
"""

import logging

import networkx as nx

from plantmodel.core.system_model import SystemModel
from plantmodel.models.enums import ComponentKind
from plantmodel.models.keys import PropKeys

logger = logging.getLogger(__name__)


def map_course_graph(model: SystemModel) -> nx.MultiDiGraph:
    """Map the points and paths of model to a directed multigraph.

    Args:
        model: System model; paths should have passed validation

    Returns:
        MultiDiGraph keyed by point name, one edge per travel direction
    """
    graph = nx.MultiDiGraph(name=model.name)
    graph.add_nodes_from(model.names(ComponentKind.POINT))

    for path in model.components(ComponentKind.PATH):
        if path.property_value(PropKeys.LOCKED, False):
            logger.debug(f"Skipping locked path {path.name}")
            continue

        start = path.property_value(PropKeys.START_COMPONENT)
        end = path.property_value(PropKeys.END_COMPONENT)
        if start not in graph or end not in graph:
            logger.warning(f"Path {path.name} does not connect two known points, skipped")
            continue

        attrs = {
            "path": path.name,
            "weight": int(path.property_value(PropKeys.ROUTING_COST, 1)),
            "length": path.get_property(PropKeys.LENGTH).get_value_by_unit("mm"),
        }
        if path.get_property(PropKeys.MAX_VELOCITY).get_value_by_unit("mm/s") != 0:
            graph.add_edge(start, end, key=(path.name, False), reverse=False, **attrs)
        if path.get_property(PropKeys.MAX_REVERSE_VELOCITY).get_value_by_unit("mm/s") != 0:
            graph.add_edge(end, start, key=(path.name, True), reverse=True, **attrs)

    logger.info(
        f"Mapped course graph with {graph.number_of_nodes()} points "
        f"and {graph.number_of_edges()} edges"
    )
    return graph


__all__ = ["map_course_graph"]
