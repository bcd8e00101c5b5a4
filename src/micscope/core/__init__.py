"""Audio capture, feature extraction and temporal analysis."""

from micscope.core.analyser import FrequencyAnalyser
from micscope.core.snapshot import AudioSnapshot
from micscope.core.source import AudioSource, CaptureState

__all__ = ["AudioSnapshot", "AudioSource", "CaptureState", "FrequencyAnalyser"]
