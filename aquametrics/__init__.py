"""
Aquaculture Production Metrics Engine

Derives per-system and farm-wide production KPIs (eFCR, biomass, mortality,
water quality, population) from farm-operation rows.
"""

__version__ = "1.0.0"
