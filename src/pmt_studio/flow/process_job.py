"""
This runs a PMT gain job.
This python script takes a json file path as a -i input, runs the single photoelectron analysis over every
raw-tier file listed in it, and writes the accumulated histograms to the output file.
"""
# import os module
import os

# turn off file locking
os.environ["HDF5_USE_FILE_LOCKING"] = "FALSE"

# import python modules
import argparse
import logging

import h5py
import matplotlib.pyplot as plt
from tqdm import tqdm

from pmt_studio.gain.accumulator import GainAccumulator
from pmt_studio.gain.gain import GainAnalysisEngine
from pmt_studio.raw.read_raw import read_raw_events
from pmt_studio.util.channel_map import ChannelMap
from pmt_studio.util.parse_json_config import GainConfig, parse_gain_json


def write_gain_output(accumulator: GainAccumulator, output_file: str) -> None:
    """
    Write the finalized histograms of every channel to an h5py file, one group per channel.

    Parameters
    ----------
    accumulator
        A finalized :class:`.GainAccumulator`
    output_file
        Path to the output file, must not exist yet
    """
    if not accumulator.finalized:
        raise RuntimeError("Accumulator must be finalized before writing it out")

    summary = accumulator.summary
    with h5py.File(output_file, "w-") as f:
        f.attrs["n_success"] = summary.n_success
        f.attrs["n_failed"] = summary.n_failed
        f.attrs["n_saturated"] = summary.n_saturated
        f.attrs["n_skipped"] = summary.n_skipped
        f.attrs["total_spes"] = summary.total_spes

        for chan in accumulator.channels:
            grp = f.create_group(f"opchannel_{chan.channel}")
            grp.attrs["n_spe"] = chan.n_spe
            grp.create_dataset("avgspe/samples", data=chan.shape_axis)
            grp.create_dataset("avgspe/shape", data=chan.avg_shape)

            hists = {"amp": chan.amplitude}
            hists.update({f"integ/{name}": h for name, h in chan.integrals.items()})
            for key, hist in hists.items():
                grp.create_dataset(f"{key}/counts", data=hist.contents)
                grp.create_dataset(f"{key}/edges", data=hist.edges)
                grp[key].attrs["underflow"] = hist.underflow
                grp[key].attrs["overflow"] = hist.overflow
                grp[key].attrs["entries"] = hist.entries
                mean = hist.mean()
                grp[key].attrs["mean"] = mean.nominal_value
                grp[key].attrs["mean_error"] = mean.std_dev


def plot_channel_summary(accumulator: GainAccumulator, out_path: str) -> list:
    """
    Save a monitoring plot per channel: the average SPE shape, the amplitude spectrum, and the integral spectra.
    Returns the paths of the figures.
    """
    fig_paths = []
    for chan in accumulator.channels:
        fig, axs = plt.subplots(1, 3, figsize=(15, 4))
        fig.suptitle(f"Channel {chan.channel}, {chan.n_spe} SPEs")

        axs[0].plot(chan.shape_axis, chan.avg_shape, c="k")
        axs[0].set_xlabel("Samples from peak")
        axs[0].set_ylabel("ADC")
        axs[0].set_title("Average SPE Shape")

        axs[1].stairs(chan.amplitude.contents, chan.amplitude.edges, fill=True, alpha=0.5)
        axs[1].set_xlabel("Amplitude [ADC]")
        axs[1].set_ylabel("Counts")
        mean = chan.amplitude.mean()
        axs[1].set_title(f"Amplitude, mean {mean.nominal_value:.1f} +/- {mean.std_dev:.1f}")

        for name, hist in chan.integrals.items():
            axs[2].stairs(hist.contents, hist.edges, label=name)
        axs[2].set_xlabel("Integral value [ADC*samples]")
        axs[2].set_ylabel("Counts")
        axs[2].set_title("Integrals")
        axs[2].legend()

        fig_path = os.path.join(out_path, f"monitoring_plots_opchannel_{chan.channel}.png")
        fig.tight_layout()
        fig.savefig(fig_path, dpi=fig.dpi)
        plt.close(fig)
        fig_paths.append(fig_path)
    return fig_paths


def run_gain(
    input_files: list,
    config: GainConfig,
    channel_map: ChannelMap,
    output_file: str,
    save_plots: bool = False,
) -> GainAccumulator:
    """
    Run the single photoelectron analysis over every event of every input file, then write the results.

    Parameters
    ----------
    input_files
        Paths to raw-tier files, see :func:`.raw.read_raw.read_raw_events`
    config
        The analysis parameters
    channel_map
        Detector and electronics type of each channel
    output_file
        Path to the h5 output file
    save_plots
        Also save monitoring plots next to the output file
    """
    engine = GainAnalysisEngine.from_config(config, channel_map)

    for input_file in input_files:
        print("processing", input_file)
        for event_id, waveforms in tqdm(read_raw_events(input_file), desc=os.path.basename(input_file)):
            engine.process_event(event_id, waveforms)

    summary = engine.finalize()
    print(
        f"Analyses complete. SPEs analyzed from {summary.n_success} waveforms. "
        f"Analysis failed on {summary.n_failed} waveforms."
    )
    print("Total SPEs found:", summary.total_spes)

    write_gain_output(engine.accumulator, output_file)
    if save_plots:
        plot_channel_summary(engine.accumulator, os.path.dirname(os.path.abspath(output_file)))

    return engine.accumulator


def main(argv=None) -> None:
    # Setup the argument parser
    pars = argparse.ArgumentParser(description="Run the PMT single photoelectron gain analysis")
    pars.add_argument("-i", type=str, required=True, help="path to the input json file")
    pars.add_argument("-p", action="store_true", help="save monitoring plots")
    pars.add_argument("-v", action="store_true", help="verbose logging")
    args = pars.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.v else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config, input_files, output_file, channel_map_file = parse_gain_json(args.i)
    channel_map = ChannelMap.from_json(channel_map_file)

    print("processing", len(input_files), "files into", output_file)
    run_gain(input_files, config, channel_map, output_file, save_plots=args.p)
    print("exited gracefully.")


if __name__ == "__main__":
    main()
