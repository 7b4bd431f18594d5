import pytest
import json
import os

import h5py
import numpy as np

from pmt_studio.flow.process_job import main, run_gain, write_gain_output
from pmt_studio.gain.accumulator import GainAccumulator
from pmt_studio.raw.read_raw import write_raw
from pmt_studio.simulations.simulate_pmt_waveforms import synthetic_waveform
from pmt_studio.util.channel_map import ChannelMap
from pmt_studio.util.parse_json_config import GainConfig

SPE = np.array([5, 20, 40, 25, 12, 6, 3, 1], dtype=np.float64)
channel_map_entries = [
    {"channel": 0, "pd_type": "pmt_coated", "electronics": "caen"},
    {"channel": 1, "pd_type": "xarapuca_vuv", "electronics": "daphne"},
    {"channel": 2, "pd_type": "pmt_uncoated", "electronics": "caen"},
]


def make_raw_file(path, n_events=10):
    """Every event has a one-pulse PMT waveform, a flat PMT waveform, and an xarapuca waveform"""
    events, channels, waveforms = [], [], []
    for event in range(n_events):
        for channel, positions in [(0, [300]), (2, []), (1, [300])]:
            events.append(event)
            channels.append(channel)
            waveforms.append(
                synthetic_waveform(1000, positions, SPE, dither=1, dither_phase=event % 2)
            )
    write_raw(str(path), events, channels, np.zeros(len(events)), np.array(waveforms))
    return str(path)


@pytest.fixture
def job(tmp_path):
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()
    make_raw_file(raw_dir / "t1_run_1.h5")
    make_raw_file(raw_dir / "t1_run_2.h5")

    channel_map = tmp_path / "channel_map.json"
    channel_map.write_text(json.dumps(channel_map_entries))

    config = {
        "input_path": str(raw_dir),
        "output_path": str(tmp_path / "out"),
        "output_file_name": "gain.h5",
        "channel_map": str(channel_map),
        "input_files": ["t1_run_1.h5", "t1_run_2.h5"],
        "analysis": {"nbmin_factor": 0, "nbmax_factor": 0.5, "n2bmin_factor": 0.8},
    }
    json_file = tmp_path / "gain.json"
    json_file.write_text(json.dumps(config))
    return tmp_path, str(json_file)


def test_main(job):
    tmp_path, json_file = job
    main(["-i", json_file, "-p"])

    output_file = tmp_path / "out" / "gain.h5"
    with h5py.File(output_file, "r") as f:
        assert set(f.keys()) == {"opchannel_0", "opchannel_2"}
        assert f.attrs["n_success"] == 20
        assert f.attrs["n_failed"] == 20
        assert f.attrs["n_skipped"] == 20
        assert f.attrs["total_spes"] == 20

        grp = f["opchannel_0"]
        assert grp.attrs["n_spe"] == 20
        assert np.array_equal(grp["avgspe/samples"][()], np.arange(-10, 31))
        assert grp["avgspe/shape"][()][10] == pytest.approx(40)
        assert np.sum(grp["amp/counts"][()]) == 20
        assert len(grp["amp/edges"][()]) == 51
        assert grp["amp"].attrs["mean"] == pytest.approx(40)
        assert set(grp["integ"].keys()) == {
            "zeromode",
            "threshmode",
            "manualmode",
            "zeromodeB",
            "threshmodeB",
            "manualmodeB",
        }
        assert grp["integ/zeromode"].attrs["entries"] == 20

        assert f["opchannel_2"].attrs["n_spe"] == 0
        assert np.all(np.isnan(f["opchannel_2/avgspe/shape"][()]))

    assert os.path.exists(tmp_path / "out" / "monitoring_plots_opchannel_0.png")
    assert os.path.exists(tmp_path / "out" / "monitoring_plots_opchannel_2.png")

    # a finished analysis is never overwritten
    with pytest.raises(ValueError, match="Output file already exists"):
        main(["-i", json_file])


def test_run_gain(job):
    tmp_path, _ = job
    config = GainConfig(nbmin_factor=0, nbmax_factor=0.5, n2bmin_factor=0.8, use_all_pmts=False)
    output_file = str(tmp_path / "selected.h5")

    accumulator = run_gain(
        [str(tmp_path / "raw" / "t1_run_1.h5")], config, ChannelMap(channel_map_entries), output_file
    )

    assert accumulator.finalized
    assert len(accumulator) == 1
    assert accumulator[0].n_spe == 10
    with h5py.File(output_file, "r") as f:
        assert list(f.keys()) == ["opchannel_0"]
    assert not os.path.exists(tmp_path / "monitoring_plots_opchannel_0.png")


def test_write_requires_finalize(tmp_path):
    accumulator = GainAccumulator([0], 2, 2)
    with pytest.raises(RuntimeError):
        write_gain_output(accumulator, str(tmp_path / "gain.h5"))
