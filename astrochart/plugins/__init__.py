"""
Plugin system for chart event overlays.

The PluginManager registers EventPlugin factories, batches render passes
per animation frame and isolates plugin failures.
"""
