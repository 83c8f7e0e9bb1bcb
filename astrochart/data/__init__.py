"""
Event data module.

Canonical event and time range models, normalization of raw event records
and list helpers shared by the cache and the plugins.
"""
