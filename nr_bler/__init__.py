"""nr_bler: adaptive Monte Carlo BLER-vs-SNR sweeps for NR-style LDPC codes."""

from .autoramp import OperatingPoint, ConvergenceTracker, EarlyAbortPolicy
from .config import SweepConfig, RunConfig, load_run_config, run_config_from_dict
from .fec import (
    FILLER,
    UnsupportedBlockLength,
    NRLDPCEncoder,
    NRLDPCDecoder,
    CodecBuild,
    try_build_codec,
    lifting_sizes,
)
from .results import BLERFileSink, MemorySink, aggregate_runs, read_bler_file
from .runner import UnsupportedConfigurationWarning, run_configurations, run_unit
from .sweep import SweepController, SweepResult, SweepLimitExceeded
from .trial import TrialRunner

__version__ = "0.1.0"
