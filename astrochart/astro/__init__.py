"""
Astronomy module.

Deterministic lunar phase model, Julian day conversions, seasonal events,
the eclipse catalogue and the event sources built on them.
"""
