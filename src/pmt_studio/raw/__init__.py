"""
Submodule for reading and writing raw-tier waveform files
"""
