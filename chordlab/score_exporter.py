"""ScoreExporter: writes a voiced progression as a four-part MusicXML score via music21."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Final

from chordlab.chord_analyzer import ChordAnalysis
from chordlab.pitch import midi_to_name
from chordlab.theory_key import Mode, TheoryKey
from chordlab.timeline import ChordRegion, MelodyEvent, TimelineSpec
from chordlab.voicing_strategy import Voice, VoicedChord

logger = logging.getLogger(__name__)

#: (voice, part name, clef), top staff first.
PART_LAYOUT: Final[tuple[tuple[Voice, str, str], ...]] = (
    (Voice.SOPRANO, "Soprano", "treble"),
    (Voice.ALTO, "Alto", "treble"),
    (Voice.TENOR, "Tenor", "bass"),
    (Voice.BASS, "Bass", "bass"),
)

_MUSIC21_MODES: Final[dict[Mode, str]] = {
    Mode.IONIAN: "major",
    Mode.AEOLIAN: "minor",
}


def music21_pitch_name(midi: int, use_flats: bool, analysis: ChordAnalysis | None = None) -> str:
    """
    Note name in music21 syntax ('B-4' for Bb4).

    With *analysis* the note is spelled by its role in that chord.
    """
    name = analysis.spell(midi) if analysis is not None else midi_to_name(midi, use_flats)
    return name[0] + name[1:].replace("b", "-")


class ScoreExporter:
    """
    Build a music21 Score with one part per SATB voice and write it as MusicXML.

    Soprano and alto use treble clefs; tenor and bass use bass clefs. An
    optional melody part is placed above the choir. music21 is imported
    lazily so the rest of the package works without it.
    """

    def __init__(self, key: TheoryKey, timeline_spec: TimelineSpec | None = None, title: str = "") -> None:
        self.key = key
        self.timeline_spec = timeline_spec if timeline_spec is not None else TimelineSpec()
        self.title = title

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _quarters(self, ticks: int) -> float:
        return self.timeline_spec.ticks_to_quarters(ticks)

    def _key_object(self) -> Any:
        from music21 import key as m21key

        tonic = self.key.tonic_name.replace("b", "-")
        mode = _MUSIC21_MODES.get(self.key.mode, self.key.mode.label.lower())
        return m21key.Key(tonic, mode)

    def _new_part(self, name: str, clef_name: str) -> Any:
        from music21 import clef, meter, stream

        part = stream.Part()
        part.partName = name
        part.insert(0, clef.TrebleClef() if clef_name == "treble" else clef.BassClef())
        part.insert(0, self._key_object())
        spec = self.timeline_spec
        if spec.time_sig_numerator is not None and spec.time_sig_denominator is not None:
            part.insert(0, meter.TimeSignature(f"{spec.time_sig_numerator}/{spec.time_sig_denominator}"))
        return part

    def _note(self, midi: int, ticks: int, analysis: ChordAnalysis | None = None) -> Any:
        from music21 import note

        n = note.Note(music21_pitch_name(midi, self.key.uses_flats, analysis))
        n.quarterLength = self._quarters(ticks)
        return n

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_score(
        self,
        regions: Sequence[ChordRegion],
        voiced_chords: Sequence[VoicedChord],
        melody_events: Sequence[MelodyEvent] = (),
        analyses: Sequence[ChordAnalysis] | None = None,
    ) -> Any:
        """
        Assemble the music21 Score.

        With *analyses*, choir notes are spelled by their role in each chord.

        Raises:
            ValueError: If regions and voiced chords are not aligned 1:1.
        """
        from music21 import metadata, stream, tempo

        if len(regions) != len(voiced_chords):
            raise ValueError(
                f"Got {len(regions)} regions but {len(voiced_chords)} voiced chords."
            )

        score = stream.Score()
        if self.title:
            score.metadata = metadata.Metadata()
            score.metadata.title = self.title

        if melody_events:
            melody_part = self._new_part("Melody", "treble")
            for event in melody_events:
                melody_part.insert(self._quarters(event.start_tick), self._note(event.midi, event.duration_ticks))
            score.insert(0, melody_part)

        for index, (voice, name, clef_name) in enumerate(PART_LAYOUT):
            part = self._new_part(name, clef_name)
            if index == 0 and self.timeline_spec.tempo_bpm is not None:
                part.insert(0, tempo.MetronomeMark(number=self.timeline_spec.tempo_bpm))
            for position, (region, voiced) in enumerate(zip(regions, voiced_chords)):
                analysis = analyses[position] if analyses is not None else None
                part.insert(
                    self._quarters(region.start_tick),
                    self._note(voiced.voices[voice], region.duration_ticks, analysis),
                )
            score.insert(0, part)
        return score

    def export(
        self,
        regions: Sequence[ChordRegion],
        voiced_chords: Sequence[VoicedChord],
        output_path: str,
        melody_events: Sequence[MelodyEvent] = (),
        analyses: Sequence[ChordAnalysis] | None = None,
    ) -> None:
        """
        Write the score to a MusicXML file.

        Raises:
            OSError:    If the output file cannot be written.
            ValueError: If regions and voiced chords are not aligned.
        """
        score = self.build_score(regions, voiced_chords, melody_events, analyses)
        score.write("musicxml", fp=output_path)
        logger.info("Wrote MusicXML score to %s", output_path)
