"""
Utility functions module.

Time Semantics:
- Event and candle timestamps are integer unix seconds (UTC)
- Dates may arrive as datetimes, dates, numbers or ISO strings
- Unparseable input fails fast instead of producing a bogus timestamp
"""
