"""
Metrics Module

Time windows, per-key aggregation, ratios, snapshot selection and trend
series. Import from the submodules directly.
"""
