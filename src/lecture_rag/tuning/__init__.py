from .config import TuningConfig
from .tuning import TunedSettings, TuningRequest, round_half_up, tune

__all__ = ["TunedSettings", "TuningConfig", "TuningRequest", "round_half_up", "tune"]
