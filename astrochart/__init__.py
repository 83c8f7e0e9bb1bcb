"""
astrochart - Event overlay core for financial time-series charts

Keeps a windowed, de-duplicated cache of astronomical and economic events
synchronized with an incrementally loaded candlestick series and fans the
events out to independently failing rendering plugins.
"""

__version__ = "0.1.0"
__author__ = "astrochart Team"
