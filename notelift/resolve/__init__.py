from notelift.resolve.resolver import PathResolver

__all__ = ["PathResolver"]
