"""Infrastructure layer — document files, workspace, graph engine.

This layer depends on stdlib and third-party libs (pydantic, ruamel.yaml,
NetworkX) and on the pure domain layer. It must never import from
services, commands, or output.
"""
