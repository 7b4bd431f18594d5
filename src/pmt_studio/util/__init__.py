"""
Submodule for configuration parsing and channel mapping
"""
