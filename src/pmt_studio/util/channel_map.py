"""
Map photon detector channels to their detector and electronics types, and pick out the PMTs to analyze
"""
import json
import logging

import numpy as np

from pmt_studio.errors import ConfigurationError

logger = logging.getLogger(__name__)

N_PDS = 312  # PMTs + xARAPUCAs
EXCLUDED_PD_TYPES = ("xarapuca_vuv", "xarapuca_vis")


class ChannelMap:
    """
    Lookup of the photon detector type and readout electronics of every channel

    Parameters
    ----------
    entries
        A list of dictionaries, each with a `channel`, a `pd_type` (e.g. `pmt_coated`, `xarapuca_vuv`),
        and an `electronics` (e.g. `daphne`, `caen`) key


    JSON Configuration Example
    --------------------------

    .. code-block :: json

        [
        {"channel": 0, "pd_type": "pmt_coated", "electronics": "caen"},
        {"channel": 1, "pd_type": "xarapuca_vuv", "electronics": "daphne"}
        ]
    """

    def __init__(self, entries: list):
        self._pd_types = {}
        self._electronics = {}
        for entry in entries:
            ch = int(entry["channel"])
            if ch in self._pd_types:
                raise ConfigurationError(f"Channel {ch} appears twice in the channel map")
            self._pd_types[ch] = str(entry["pd_type"])
            self._electronics[ch] = str(entry.get("electronics", ""))

    @classmethod
    def from_json(cls, json_file_name: str) -> "ChannelMap":
        with open(json_file_name) as f:
            return cls(json.load(f))

    def __len__(self):
        return len(self._pd_types)

    def __contains__(self, channel: int) -> bool:
        return channel in self._pd_types

    @property
    def channels(self) -> list:
        return sorted(self._pd_types)

    def pd_type(self, channel: int) -> str:
        return self._pd_types[channel]

    def electronics_type(self, channel: int) -> str:
        return self._electronics[channel]

    def is_pd_type(self, channel: int, pd_type: str) -> bool:
        return self._pd_types.get(channel) == pd_type


def pmt_channels(
    channel_map: ChannelMap,
    use_all: bool = True,
    selected: list = None,
    n_channels: int = N_PDS,
) -> list:
    """
    List the channel numbers to analyze, in the order their histograms are booked.

    Parameters
    ----------
    channel_map
        The :class:`ChannelMap` of the detector
    use_all
        Take every PMT
    selected
        If `use_all` is false, the PMTs to take, as ordinals counted over the PMT channels only
        (i.e. 0 is the lowest-numbered PMT, whatever its channel number). Must be increasing.
    n_channels
        Number of photon detector channels to scan

    Notes
    -----
    xARAPUCA channels are never taken.
    """
    selected = list(selected or [])
    if not use_all:
        if len(selected) == 0:
            raise ConfigurationError("No PMTs selected and use_all is false")
        if any(b <= a for a, b in zip(selected, selected[1:])):
            raise ConfigurationError("Selected PMTs must be listed in increasing order")

    channels = []
    tot_pmt_counter = 0
    for ch in range(n_channels):
        if ch not in channel_map or any(channel_map.is_pd_type(ch, t) for t in EXCLUDED_PD_TYPES):
            continue

        if use_all or selected[len(channels)] == tot_pmt_counter:
            channels.append(ch)
        tot_pmt_counter += 1

        if not use_all and len(channels) >= len(selected):
            break

    if not use_all and len(channels) < len(selected):
        logger.warning(
            "Only %d of %d selected PMTs exist in the channel map", len(channels), len(selected)
        )
    return channels


class ChannelIndex:
    """
    Dense lookup from a channel number to its position in the accumulators. Unselected channels map to -1.
    """

    def __init__(self, channels: list):
        self.channels = list(channels)
        size = max(self.channels) + 1 if self.channels else 0
        self._lookup = np.full(size, -1, dtype=int)
        for idx, ch in enumerate(self.channels):
            self._lookup[ch] = idx

    @classmethod
    def from_channel_map(
        cls, channel_map: ChannelMap, use_all: bool = True, selected: list = None
    ) -> "ChannelIndex":
        return cls(pmt_channels(channel_map, use_all, selected))

    def __len__(self):
        return len(self.channels)

    def index_of(self, channel: int) -> int:
        if 0 <= channel < len(self._lookup):
            return int(self._lookup[channel])
        return -1
