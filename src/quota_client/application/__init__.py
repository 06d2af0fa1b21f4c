"""Application layer: orchestration over the infrastructure components."""

from .executor import RequestExecutor

__all__ = ["RequestExecutor"]
