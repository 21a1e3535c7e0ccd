"""Protocol layer: per-family packet codecs and the command sequencer."""

from .sequencer import CommandSequencer, SequenceState
