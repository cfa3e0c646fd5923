"""Domain layer — addressing, the state graph, and the graph engines.

This layer depends only on the standard library.
It must never import from services, infrastructure, commands, or config.
"""
