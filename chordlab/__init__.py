"""chordlab: deterministic four-part (SATB) harmonization of chord progressions."""

__version__ = "0.1.0"
