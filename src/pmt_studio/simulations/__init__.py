"""
Submodule for simulating PMT waveforms
"""
