"""
tama: a modal terminal chat client for locally hosted Ollama models.
"""

__version__ = "0.3.0"
