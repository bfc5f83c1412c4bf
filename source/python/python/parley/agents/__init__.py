from .agent import Agent, build_capabilities

__all__ = ["Agent", "build_capabilities"]
