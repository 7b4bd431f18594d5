"""
A package for characterizing the single photoelectron gain of photomultiplier tubes (PMTs)
"""

from pmt_studio._version import version as __version__

__all__ = ["__version__"]
