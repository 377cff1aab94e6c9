from mindlink.graph.builder import GraphData, Link, Node, build_graph, concept_id

__all__ = ["GraphData", "Link", "Node", "build_graph", "concept_id"]
