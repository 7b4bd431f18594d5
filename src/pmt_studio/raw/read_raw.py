"""
Read and write `raw` tier h5py files of digitized PMT waveforms.
"""
import os
from dataclasses import dataclass
from typing import Iterator, Tuple

import h5py
import numpy as np


@dataclass(frozen=True)
class Waveform:
    """
    One digitized waveform from one channel in one event

    Attributes
    ----------
    channel
        The photon detector channel number
    samples
        ADC counts
    timestamp
        Time of the first sample, in us
    event
        Event number the waveform belongs to
    """

    channel: int
    samples: np.array
    timestamp: float = 0.0
    event: int = 0

    def __len__(self):
        return len(self.samples)


def write_raw(
    output_file: str,
    events: np.array,
    channels: np.array,
    timetags: np.array,
    waveforms: np.array,
) -> None:
    """
    Write waveforms to a `raw` tier file.

    Parameters
    ----------
    output_file
        Path of the h5 file to create
    events
        Event number of each waveform
    channels
        Channel number of each waveform
    timetags
        Start time of each waveform, in us
    waveforms
        A numpy array of equal sized numpy arrays containing waveform data in ADC
    """
    waveforms = np.asarray(waveforms)
    n_wfs = len(waveforms)
    if not (len(events) == len(channels) == len(timetags) == n_wfs):
        raise ValueError("Every waveform needs an event number, a channel, and a timetag")

    with h5py.File(output_file, "w") as f:
        f.create_dataset("/raw/event", data=np.asarray(events, dtype=np.int64))
        f.create_dataset("/raw/channel", data=np.asarray(channels, dtype=np.int64))
        f.create_dataset("/raw/timetag", data=np.asarray(timetags, dtype=np.float64))
        f.create_dataset("/raw/waveforms", data=waveforms)


def read_raw_events(input_file: str) -> Iterator[Tuple[int, list]]:
    """
    Read a `raw` tier file and yield its waveforms grouped by event.

    Parameters
    ----------
    input_file
        A raw-tier file that contains `raw/event`, `raw/channel`, `raw/timetag`, and `raw/waveforms` as keys

    Yields
    ------
    event_id, waveforms
        The event number and the list of :class:`Waveform` in it, in file order. Events come out in order
        of first appearance in the file.
    """
    if not os.path.exists(input_file):
        raise ValueError("Input file not found")

    with h5py.File(input_file, "r") as f:
        events = f["raw/event"][()]
        channels = f["raw/channel"][()]
        timetags = f["raw/timetag"][()]
        waveforms = f["raw/waveforms"][()]

    if len(events) == 0:
        return

    # a stable sort keeps file order inside each event
    order = np.argsort(events, kind="stable")
    _, starts = np.unique(events[order], return_index=True)
    groups = np.split(order, starts[1:])
    groups.sort(key=lambda rows: rows[0])

    for rows in groups:
        event_id = events[rows[0]]
        yield int(event_id), [
            Waveform(
                channel=int(channels[i]),
                samples=waveforms[i],
                timestamp=float(timetags[i]),
                event=int(event_id),
            )
            for i in rows
        ]
