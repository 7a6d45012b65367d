from .capabilities import GraphCapabilityResolver

__all__ = ["GraphCapabilityResolver"]
