"""
Submodule for running analysis jobs
"""
