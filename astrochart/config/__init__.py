"""
Configuration module.

Frozen default parameters, YAML overlay loading and validation.
"""
