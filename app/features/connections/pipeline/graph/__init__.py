from .service import to_combined_graph, to_graph

__all__ = ["to_combined_graph", "to_graph"]
