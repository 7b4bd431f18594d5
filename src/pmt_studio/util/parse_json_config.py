"""
Define the parameters of the PMT gain analysis and parse them from a json config file.
As an input takes the json file and returns the analysis parameters, the raw files to run over, and the output file.
"""
import os, json
import copy
from dataclasses import dataclass, field, fields

from pmt_studio.dsp.find_baseline import validate_noise_factors
from pmt_studio.errors import ConfigurationError


@dataclass
class GainConfig:
    """
    Parameters of the single photoelectron analysis

    Attributes
    ----------
    opdets_to_plot
        Photon detector types to analyze, waveforms from other types are skipped
    use_all_pmts
        Analyze every PMT. If false, only `selected_pmts` are analyzed
    selected_pmts
        PMT ordinals (counted over PMT channels only) to analyze when `use_all_pmts` is false
    lowbin
        Samples before the peak kept for the average shape
    hibin
        Samples after the peak kept for the average shape
    nstdev
        Number of noise standard deviations to set the pulse finding threshold to
    spe_region_start
        Number of samples after which the pulse search starts
    nbmin_factor
        Start of the pre-peak noise window, as a multiple of the index of the tallest peak
    nbmax_factor
        End of the pre-peak noise window, as a multiple of the index of the tallest peak
    n2bmin_factor
        Start of the post-peak noise window, as a fraction of the waveform length
    manual_bound_lo
        Samples before the peak summed by the manual-mode integrals
    manual_bound_hi
        Samples after the peak summed by the manual-mode integrals
    event_id
        The only event analyzed if `all_events` is false
    all_events
        Analyze every event
    cut
        Reject pulses from the average shape that have another pulse less than `isolation_window` before them
    isolation_window
        In us
    do_avgspe
        Accumulate the average SPE shape
    do_amp
        Accumulate the SPE amplitudes
    do_integ
        Accumulate the SPE integrals
    optical_frequency
        Sampling frequency of the CAEN digitizers, in MHz
    daphne_frequency
        Sampling frequency of the DAPHNE readout, in MHz
    amp_bins
        (number of bins, low, high) of the amplitude histograms
    integ_bins
        (number of bins, low, high) of the integral histograms
    """

    opdets_to_plot: list = field(default_factory=lambda: ["pmt_coated", "pmt_uncoated"])
    use_all_pmts: bool = True
    selected_pmts: list = field(default_factory=lambda: [0])
    lowbin: int = 10
    hibin: int = 30
    nstdev: float = 3
    spe_region_start: int = 0
    nbmin_factor: float = 0.1
    nbmax_factor: float = 0.5
    n2bmin_factor: float = 0.8
    manual_bound_lo: int = 5
    manual_bound_hi: int = 10
    event_id: int = 0
    all_events: bool = True
    cut: bool = False
    isolation_window: float = 0.1
    do_avgspe: bool = True
    do_amp: bool = True
    do_integ: bool = True
    optical_frequency: float = 500.0
    daphne_frequency: float = 62.5
    amp_bins: tuple = (50, 0, 200)
    integ_bins: tuple = (50, 0, 500)

    def __post_init__(self):
        self.amp_bins = tuple(self.amp_bins)
        self.integ_bins = tuple(self.integ_bins)
        self.validate()

    def validate(self) -> None:
        validate_noise_factors(self.nbmin_factor, self.nbmax_factor, self.n2bmin_factor)
        if self.lowbin < 0 or self.hibin < 0:
            raise ConfigurationError("lowbin and hibin must be positive")
        if self.manual_bound_lo < 0 or self.manual_bound_hi < 0:
            raise ConfigurationError("Manual integral bounds must be positive")
        if self.spe_region_start < 0:
            raise ConfigurationError("spe_region_start must be positive")
        if self.nstdev < 0:
            raise ConfigurationError("nstdev must be positive")
        if self.optical_frequency <= 0 or self.daphne_frequency <= 0:
            raise ConfigurationError("Sampling frequencies must be positive")


def gain_config_from_dict(settings: dict) -> GainConfig:
    """
    Build a :class:`GainConfig` from a dictionary, refusing keys that aren't analysis parameters
    """
    known = {f.name for f in fields(GainConfig)}
    unknown = set(settings) - known
    if unknown:
        raise ConfigurationError(f"Unknown analysis parameters: {sorted(unknown)}")
    return GainConfig(**copy.deepcopy(settings))


def parse_gain_json(json_file_name: str):
    """
    Parse a config file defined specifically for the PMT gain analysis

    Parameters
    ----------
    json_file_name
        Path to a json file containing parameters used for performing gain analysis


    Returns
    -------
    config
        The :class:`GainConfig` built from the `analysis` block
    input_files
        List of paths to raw-tier files to analyze, in order
    output_file
        Path to the output file
    channel_map_file
        Path to the channel map json file


    JSON Configuration Example
    --------------------------

    .. code-block :: json

        {
        "input_path": "/path/to/raw/files",
        "output_path": "/path/to/analyzed/data",
        "output_file_name": "output_name.h5",
        "channel_map": "/path/to/channel_map.json",
        "input_files": ["t1_run_1.h5", "t1_run_2.h5"],
        "analysis": {"lowbin": 10, "hibin": 30, "nstdev": 3, "spe_region_start": 0, "do_avgspe": true}
        }
    """
    with open(json_file_name) as f:
        json_file = json.load(f)

    # make the output directory if we need to
    if not os.path.exists(json_file["output_path"]):
        os.mkdir(json_file["output_path"])

    output_file = os.path.join(json_file["output_path"], json_file["output_file_name"])

    # make sure we don't override an existing analysis
    if os.path.exists(output_file):
        raise ValueError("Output file already exists")

    input_files = []
    for file_name in json_file["input_files"]:
        input_file = os.path.join(json_file["input_path"], file_name)
        if not os.path.exists(input_file):
            raise ValueError("Input file not found")
        input_files.append(input_file)

    channel_map_file = json_file["channel_map"]
    if not os.path.exists(channel_map_file):
        raise ValueError("Channel map not found")

    config = gain_config_from_dict(json_file.get("analysis", {}))

    return config, input_files, output_file, channel_map_file
