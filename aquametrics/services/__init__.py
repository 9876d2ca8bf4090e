"""
Services Module

Query functions and view assembly on top of the metrics engine.
"""
