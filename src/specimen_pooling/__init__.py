"""
Specimen Pooling Planner - COVID Surveillance Pooling Utility

Groups surveillance specimens into pools, packs the pools onto tube racks
and plates without splitting them, and records which well each specimen
ended up in.
"""

__version__ = "0.1.0"
__author__ = "Genome Innovation Hub"
