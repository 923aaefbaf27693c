"""LLM-based article enhancement."""

from refinery.core.enhancement.enhancer import Enhancer

__all__ = ["Enhancer"]
