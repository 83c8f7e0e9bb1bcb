"""
Event cache module.

Windowed, de-duplicated event cache synchronized with the chart's loaded
data and viewport.
"""
