#!/usr/bin/env python3
"""
Secchi Depth Analysis Framework

Censoring-aware estimation of Secchi depth statistics for coastal
water-quality monitoring stations.
"""

__version__ = "1.0.0"
