"""MidiExporter: Writes voiced SATB chords and the melody lane to a multi-track MIDI file."""

import logging
from collections.abc import Sequence

from midiutil import MIDIFile

from chordlab.timeline import ChordRegion, MelodyEvent, TimelineSpec
from chordlab.voicing_strategy import Voice, VoicedChord

logger = logging.getLogger(__name__)

# In midiutil Format 1 MIDI, track 0 is the conductor track.
TRACK_CONDUCTOR = 0
TRACK_MELODY = 5

#: Voice -> (track, channel, track name). Soprano on top so notation apps stack staves SATB.
VOICE_TRACKS: dict[Voice, tuple[int, int, str]] = {
    Voice.SOPRANO: (1, 0, "Soprano"),
    Voice.ALTO: (2, 1, "Alto"),
    Voice.TENOR: (3, 2, "Tenor"),
    Voice.BASS: (4, 3, "Bass"),
}
CHANNEL_MELODY = 4


class MidiExporter:
    """
    Writes a Format 1 MIDI file from voiced regions.

    Track layout
    ------------
    Track 0   conductor (tempo and time signature, no notes)
    Tracks 1-4  Soprano, Alto, Tenor, Bass, one voice per track
    Track 5   Melody lane (only when melody events are given)

    Timing
    ------
    Region and melody positions are in ticks; they are converted to beats
    with ``beats = ticks / ticks_per_quarter``. Tempo only affects playback.
    """

    DEFAULT_TEMPO = 80      # BPM
    DEFAULT_VELOCITY = 80   # inner and outer voices
    MELODY_VELOCITY = 96    # melody sits above the choir

    def __init__(
        self,
        timeline_spec: TimelineSpec | None = None,
        tempo: float | None = None,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """
        Args:
            timeline_spec: Tick resolution and optional metre; defaults to TimelineSpec().
            tempo:         Playback tempo; falls back to the timeline tempo, then DEFAULT_TEMPO.
            velocity:      MIDI note-on velocity for the SATB voices.
        """
        self.timeline_spec = timeline_spec if timeline_spec is not None else TimelineSpec()
        if tempo is None:
            tempo = self.timeline_spec.tempo_bpm or self.DEFAULT_TEMPO
        self.tempo = tempo
        self.velocity = velocity

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ticks_to_beats(self, ticks: int) -> float:
        return ticks / self.timeline_spec.ticks_per_quarter

    def _add_time_signature(self, midi: MIDIFile) -> None:
        spec = self.timeline_spec
        if spec.time_sig_numerator is None or spec.time_sig_denominator is None:
            return
        # midiutil takes the denominator as a power of two.
        denominator_power = spec.time_sig_denominator.bit_length() - 1
        if 1 << denominator_power != spec.time_sig_denominator:
            logger.warning(
                "Time signature denominator %d is not a power of two; skipped.",
                spec.time_sig_denominator,
            )
            return
        midi.addTimeSignature(
            TRACK_CONDUCTOR, 0, spec.time_sig_numerator, denominator_power, 24
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        regions: Sequence[ChordRegion],
        voiced_chords: Sequence[VoicedChord],
        melody_events: Sequence[MelodyEvent] = (),
    ) -> MIDIFile:
        """
        Assemble the MIDIFile in memory.

        Raises:
            ValueError: If regions and voiced chords are not aligned 1:1.
        """
        if len(regions) != len(voiced_chords):
            raise ValueError(
                f"Got {len(regions)} regions but {len(voiced_chords)} voiced chords."
            )

        num_tracks = TRACK_MELODY + 1 if melody_events else TRACK_MELODY
        midi = MIDIFile(numTracks=num_tracks, removeDuplicates=False, deinterleave=False)

        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)
        self._add_time_signature(midi)

        for track, _, name in VOICE_TRACKS.values():
            midi.addTrackName(track, 0, name)

        for region, voiced in zip(regions, voiced_chords):
            start = self._ticks_to_beats(region.start_tick)
            duration = self._ticks_to_beats(region.duration_ticks)
            for voice, (track, channel, _) in VOICE_TRACKS.items():
                midi.addNote(
                    track=track,
                    channel=channel,
                    pitch=voiced.voices[voice],
                    time=start,
                    duration=duration,
                    volume=self.velocity,
                )

        if melody_events:
            midi.addTrackName(TRACK_MELODY, 0, "Melody")
            for event in melody_events:
                midi.addNote(
                    track=TRACK_MELODY,
                    channel=CHANNEL_MELODY,
                    pitch=event.midi,
                    time=self._ticks_to_beats(event.start_tick),
                    duration=self._ticks_to_beats(event.duration_ticks),
                    volume=self.MELODY_VELOCITY,
                )
        return midi

    def export(
        self,
        regions: Sequence[ChordRegion],
        voiced_chords: Sequence[VoicedChord],
        output_path: str,
        melody_events: Sequence[MelodyEvent] = (),
    ) -> None:
        """
        Render voiced regions to a Standard MIDI File.

        Args:
            regions:       Chord regions (tick positions).
            voiced_chords: One VoicedChord per region.
            output_path:   Destination file path (e.g. "progression.mid").
            melody_events: Optional melody lane, written to its own track.

        Raises:
            OSError:    If the output file cannot be opened for writing.
            ValueError: If regions and voiced chords are not aligned.
        """
        midi = self.build(regions, voiced_chords, melody_events)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
        logger.info("Wrote %d chord(s) to %s", len(voiced_chords), output_path)
