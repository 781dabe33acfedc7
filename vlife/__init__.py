"""
V-Life Simulation

A deterministic, headless 2D world of cells. Each cell carries a small neural
network, metabolises molecules into energy, moves with cilia, contracts, and
exchanges energy with the cells it touches. Cells that die are scored into a
ranking whose genomes seed the next generation.

Architecture: Simulator is the source of truth. The console runner and any
front end are consumers.
"""

__version__ = "0.1.0"
