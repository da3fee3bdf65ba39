"""MindVault knowledge graph engine.

Turns a snapshot of notes into a weighted relationship graph, computes
structural metrics over it and lays it out with a force simulation.
"""

__version__ = "0.1.0"
