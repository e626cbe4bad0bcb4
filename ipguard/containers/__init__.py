# ipguard/containers/__init__.py
from ipguard.containers.container import Container

__all__ = ["Container"]
