"""
Asynchronous job dispatch for template generation.
"""

from template_engine.dispatch.generation_queue import GenerationQueue

__all__ = ["GenerationQueue"]
