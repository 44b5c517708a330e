from .thread_runner import ConcurrentTaskRunner, topo_sort

__all__ = ["ConcurrentTaskRunner", "topo_sort"]
