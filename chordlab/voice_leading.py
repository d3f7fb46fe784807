"""VoiceLeadingSolver: left-to-right SATB voicing with tendency resolution and coverage repair."""

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from chordlab.chord_analyzer import ChordAnalysis, ChordAnalyzer, ChordTones
from chordlab.diagnostics import DiagCode, DiagnosticsCollector, DiagSeverity
from chordlab.pitch import midi_to_name
from chordlab.theory_key import TheoryKey
from chordlab.timeline import ChordRegion
from chordlab.voicing_strategy import (
    Voice,
    VoicedChord,
    VoiceMotion,
    VoicingConfig,
    VoicingResult,
    VoicingStrategy,
    voicing_violations,
)

logger = logging.getLogger(__name__)

Voicing = tuple[int, int, int, int]

#: Order in which competing resolutions are honoured.
RESOLUTION_PRIORITY: tuple[Voice, ...] = (Voice.SOPRANO, Voice.ALTO, Voice.TENOR, Voice.BASS)

#: Order in which a first-region tension looks for a home.
TENSION_PRIORITY: tuple[Voice, ...] = (Voice.SOPRANO, Voice.ALTO, Voice.TENOR)

#: Upper voices eligible as coverage-repair victims; the bass carries the inversion.
REPAIR_ORDER: tuple[Voice, ...] = (Voice.TENOR, Voice.ALTO, Voice.SOPRANO)


class GuardKind(Enum):
    FREE = "free"
    PINNED_MELODY = "pinned melody"
    PROTECTED_TENSION = "protected tension"
    PROTECTED_RESOLUTION = "protected resolution"


@dataclass(frozen=True)
class VoiceGuard:
    """Protection state of one voice slot during a single region's solve."""

    kind: GuardKind = GuardKind.FREE
    pitch_class: int | None = None

    @property
    def is_protected(self) -> bool:
        return self.kind is not GuardKind.FREE


FREE = VoiceGuard()


class TendencyKind(Enum):
    SEVENTH = "7th"
    AUGMENTED_FIFTH = "#5"


#: Semitone steps that resolve each tendency tone.
TENDENCY_STEPS: dict[TendencyKind, tuple[int, ...]] = {
    TendencyKind.SEVENTH: (-1, -2),
    TendencyKind.AUGMENTED_FIFTH: (1,),
}


@dataclass(frozen=True)
class Requirement:
    """A hard resolution obligation carried from the previous region into one voice."""

    voice: Voice
    kind: TendencyKind
    source_midi: int
    targets: frozenset[int]

    def satisfied_by(self, voices: Sequence[int]) -> bool:
        return voices[self.voice] in self.targets


@dataclass(frozen=True)
class CoverageRepair:
    """
    Result of :func:`repair_coverage`.

    Attributes:
        voices:  Repaired voicing.
        changes: ``(voice, before_midi, after_midi)`` for every reassignment.
        missing: Required tones and tensions still absent afterwards.
    """

    voices: Voicing
    changes: tuple[tuple[Voice, int, int], ...]
    missing: tuple[int, ...]


@dataclass(frozen=True)
class _RegionContext:
    index: int
    analysis: ChordAnalysis
    melody: int | None
    prev_voices: Voicing | None
    prev_analysis: ChordAnalysis | None
    next_analysis: ChordAnalysis | None
    next_melody: int | None


# ------------------------------------------------------------------
# Module helpers
# ------------------------------------------------------------------

def _pitches_in(pcs: frozenset[int] | set[int], low: int, high: int) -> list[int]:
    return [midi for midi in range(low, high + 1) if midi % 12 in pcs]


def _pcs(voices: Sequence[int]) -> set[int]:
    return {midi % 12 for midi in voices}


def _covers(voices: Sequence[int], tones: ChordTones) -> bool:
    return tones.required <= _pcs(voices)


def tendency_of(midi: int, tones: ChordTones) -> TendencyKind | None:
    """Which tendency (if any) a note carries within a chord."""
    pc = midi % 12
    if tones.seventh is not None and pc == tones.seventh:
        return TendencyKind.SEVENTH
    if tones.augmented_fifth and pc == tones.fifth:
        return TendencyKind.AUGMENTED_FIFTH
    return None


def resolution_targets(
    voice: Voice,
    midi: int,
    kind: TendencyKind,
    next_tones: ChordTones,
    config: VoicingConfig,
) -> frozenset[int]:
    """
    Legal landing notes for a tendency tone moving into the next chord.

    The bass may only land on the next chord's bass pitch class; the other
    voices may land on any of its pitch classes. Targets must stay inside
    the voice's register window.
    """
    allowed = {next_tones.bass} if voice is Voice.BASS else next_tones.all_pitch_classes
    low, high = config.voice_range(voice)
    return frozenset(
        target
        for target in (midi + step for step in TENDENCY_STEPS[kind])
        if low <= target <= high and target % 12 in allowed
    )


def _repair_tier(pc: int, counts: Counter, tones: ChordTones) -> int | None:
    """Victim preference: lower is sacrificed first; None means untouchable."""
    essential = tones.required | tones.tensions
    if counts[pc] > 1 and pc not in essential:
        return 0
    if counts[pc] > 1:
        return 1
    if pc not in essential and pc != tones.fifth:
        return 2
    if pc not in essential:
        return 3
    return None


def repair_coverage(
    voices: Sequence[int],
    tones: ChordTones,
    guards: Sequence[VoiceGuard],
    config: VoicingConfig,
) -> CoverageRepair:
    """
    Reassign voices so that every required tone and tension is present.

    Missing tones are handled in priority order (7th, 3rd, root, augmented
    5th, tensions). For each, a victim voice is chosen among unprotected
    upper voices: a duplicated non-essential tone first, then any duplicated
    tone, then a colour tone, and an optional 5th last. The victim moves to
    the nearest note of the missing pitch class that keeps ordering and
    spacing legal, within its register window widened by
    ``config.repair_slack``.
    """
    current = list(voices)
    changes: list[tuple[Voice, int, int]] = []

    for missing_pc in tones.coverage_order():
        if missing_pc in _pcs(current):
            continue
        counts = Counter(midi % 12 for midi in current)
        best: tuple[tuple[int, int, int], Voice, int] | None = None
        for voice in REPAIR_ORDER:
            if guards[voice].is_protected:
                continue
            tier = _repair_tier(current[voice] % 12, counts, tones)
            if tier is None:
                continue
            low, high = config.voice_range(voice)
            options = sorted(
                _pitches_in({missing_pc}, low - config.repair_slack, high + config.repair_slack),
                key=lambda midi, v=voice: (abs(midi - current[v]), midi),
            )
            for midi in options:
                trial = list(current)
                trial[voice] = midi
                if voicing_violations(trial, config):
                    continue
                rank = (tier, abs(midi - current[voice]), REPAIR_ORDER.index(voice))
                if best is None or rank < best[0]:
                    best = (rank, voice, midi)
                break
        if best is None:
            continue
        _, voice, midi = best
        changes.append((voice, current[voice], midi))
        current[voice] = midi

    repaired: Voicing = (current[0], current[1], current[2], current[3])
    return CoverageRepair(
        voices=repaired,
        changes=tuple(changes),
        missing=tuple(tones.missing(_pcs(repaired))),
    )


# ── Solver ───────────────────────────────────────────────────────────────────

class VoiceLeadingSolver(VoicingStrategy):
    """
    Deterministic four-part voice-leading solver.

    Per region, processed left to right with one-step lookahead:

    1. Enumerate every (bass, tenor, alto, soprano) assignment whose pitch
       classes belong to the chord, inside each voice's register window, in
       strict order (tenor and alto may share a note) and within the spacing
       caps. A melody note pins the soprano.
    2. Carry hard obligations from the previous region: a voice that held
       the 7th must step down 1-2 semitones, a voice that held a #5 must
       step up 1 semitone, whenever such a landing exists. A pinned soprano
       is exempt. Obligations are applied in priority order (7ths before
       #5s, soprano before alto before tenor before bass). One that cannot
       be met together with those already applied is relaxed, and so is one
       whose every landing would drop a required tone the free pool covers.
    3. In the first region, keep only voicings whose 7th can resolve into
       the next chord, and place each required tension by a fixed
       soprano -> alto -> tenor search.
    4. Pick the cheapest remaining voicing (movement, register gravity,
       compression, coverage, doubling and soft tendency terms); ties break
       on the voicing tuple itself.
    5. Guard voices that carry a forced resolution, a tension or the melody,
       then repair chord-tone coverage with the unguarded voices.

    The solver never raises for musical conflicts; every relaxation is
    reported as a diagnostic event.
    """

    def __init__(
        self,
        config: VoicingConfig | None = None,
        analyzer: ChordAnalyzer | None = None,
    ) -> None:
        """
        Args:
            config:   Cost and register settings; defaults to VoicingConfig().
            analyzer: Chord analyzer used to derive chord tones.
        """
        self.config = config if config is not None else VoicingConfig()
        self.analyzer = analyzer if analyzer is not None else ChordAnalyzer()

    # ------------------------------------------------------------------
    # Private helpers: candidates
    # ------------------------------------------------------------------

    def _windows(self) -> dict[Voice, tuple[int, int]]:
        return {voice: self.config.voice_range(voice) for voice in Voice}

    def _widened_windows(self, melody: int | None) -> dict[Voice, tuple[int, int]]:
        cfg = self.config
        low = cfg.bass_range[0]
        high = max(cfg.soprano_range[1], melody if melody is not None else 0)
        return {
            Voice.BASS: (max(0, low - 12), min(127, cfg.bass_range[1] + 12)),
            Voice.TENOR: (low, high),
            Voice.ALTO: (low, high),
            Voice.SOPRANO: (low, high),
        }

    def _enumerate(
        self,
        tones: ChordTones,
        melody: int | None,
        windows: dict[Voice, tuple[int, int]],
    ) -> list[Voicing]:
        cfg = self.config
        upper = tones.all_pitch_classes
        basses = _pitches_in({tones.bass}, *windows[Voice.BASS])
        tenors = _pitches_in(upper, *windows[Voice.TENOR])
        altos = _pitches_in(upper, *windows[Voice.ALTO])
        sopranos = [melody] if melody is not None else _pitches_in(upper, *windows[Voice.SOPRANO])

        candidates: list[Voicing] = []
        for soprano in sopranos:
            for alto in altos:
                if not (alto < soprano and soprano - alto <= cfg.max_soprano_alto):
                    continue
                for tenor in tenors:
                    if not (tenor <= alto and alto - tenor <= cfg.max_alto_tenor):
                        continue
                    for bass in basses:
                        if bass < tenor and tenor - bass <= cfg.max_tenor_bass:
                            candidates.append((bass, tenor, alto, soprano))
        return candidates

    def _next_below(self, ceiling: int, preferred: set[int], allowed: frozenset[int] | set[int]) -> int:
        """Highest note below *ceiling* (within an octave), preferring *preferred* pitch classes."""
        window = range(ceiling - 1, ceiling - 13, -1)
        for midi in window:
            if midi % 12 in preferred:
                return midi
        for midi in window:
            if midi % 12 in allowed:
                return midi
        return ceiling - 12

    def _stack_below(self, tones: ChordTones, melody: int | None) -> Voicing:
        """Last-resort voicing stacked downward from the soprano; always ordered and spaced."""
        upper = tones.all_pitch_classes
        if melody is not None:
            soprano = melody
        else:
            low, high = self.config.soprano_range
            fits = _pitches_in(upper, low, high)
            soprano = fits[-1] if fits else high
        wanted = set(tones.coverage_order()) - {soprano % 12}
        alto = self._next_below(soprano, wanted, upper)
        wanted.discard(alto % 12)
        tenor = self._next_below(alto, wanted, upper)
        bass = self._next_below(tenor, {tones.bass}, {tones.bass})
        return (bass, tenor, alto, soprano)

    # ------------------------------------------------------------------
    # Private helpers: tendencies
    # ------------------------------------------------------------------

    def _requirements(
        self,
        ctx: _RegionContext,
        prev_voices: Voicing,
        prev_analysis: ChordAnalysis,
        diagnostics: DiagnosticsCollector,
    ) -> list[Requirement]:
        prev_tones = prev_analysis.tones
        tones = ctx.analysis.tones
        requirements: list[Requirement] = []

        for voice in RESOLUTION_PRIORITY:
            source = prev_voices[voice]
            kind = tendency_of(source, prev_tones)
            if kind is None:
                continue
            name = midi_to_name(source)

            if voice is Voice.SOPRANO and ctx.melody is not None:
                allowed = tones.all_pitch_classes
                resolves = any(
                    ctx.melody == source + step and ctx.melody % 12 in allowed
                    for step in TENDENCY_STEPS[kind]
                )
                if not resolves:
                    diagnostics.add(
                        ctx.index,
                        DiagSeverity.INFO,
                        DiagCode.MELODY_CONSTRAINT_BLOCKED,
                        f"melody {midi_to_name(ctx.melody)} leaves the soprano {kind.value} "
                        f"{name} unresolved",
                        voice_index=int(voice),
                        before_midi=source,
                        after_midi=ctx.melody,
                    )
                continue

            targets = resolution_targets(voice, source, kind, tones, self.config)
            if not targets:
                diagnostics.add(
                    ctx.index,
                    DiagSeverity.INFO,
                    DiagCode.RESOLUTION_UNAVAILABLE,
                    f"{voice.label} {kind.value} {name} has no legal resolution in this chord",
                    voice_index=int(voice),
                    before_midi=source,
                )
                continue
            requirements.append(Requirement(voice, kind, source, targets))

        requirements.sort(
            key=lambda r: (0 if r.kind is TendencyKind.SEVENTH else 1, RESOLUTION_PRIORITY.index(r.voice))
        )
        return requirements

    def _apply_requirements(
        self,
        ctx: _RegionContext,
        pool: list[Voicing],
        requirements: list[Requirement],
        diagnostics: DiagnosticsCollector,
    ) -> tuple[list[Voicing], list[Requirement]]:
        tones = ctx.analysis.tones
        active: list[Requirement] = []
        for requirement in requirements:
            narrowed = [c for c in pool if requirement.satisfied_by(c)]
            if not narrowed:
                reason = "could not resolve alongside higher-priority resolutions"
            elif any(_covers(c, tones) for c in narrowed) or not any(
                _covers(c, tones) for c in pool
            ):
                pool = narrowed
                active.append(requirement)
                continue
            else:
                reason = "left unresolved: resolving it would drop a required chord tone"
            diagnostics.add(
                ctx.index,
                DiagSeverity.WARNING,
                DiagCode.RESOLUTION_RELAXED,
                f"{requirement.voice.label} {requirement.kind.value} "
                f"{midi_to_name(requirement.source_midi)} {reason}",
                voice_index=int(requirement.voice),
                before_midi=requirement.source_midi,
            )
        return pool, active

    def _can_resolve_tendencies(
        self, candidate: Voicing, ctx: _RegionContext, next_tones: ChordTones
    ) -> bool:
        """True when every 7th/#5 in *candidate* has a landing note in *next_tones*."""
        for voice in Voice:
            if voice is Voice.SOPRANO and ctx.next_melody is not None:
                continue
            kind = tendency_of(candidate[voice], ctx.analysis.tones)
            if kind is None:
                continue
            if not resolution_targets(voice, candidate[voice], kind, next_tones, self.config):
                return False
        return True

    def _first_region_placement(
        self, ctx: _RegionContext, pool: list[Voicing], diagnostics: DiagnosticsCollector
    ) -> list[Voicing]:
        tones = ctx.analysis.tones

        if tones.seventh is not None and ctx.next_analysis is not None:
            next_tones = ctx.next_analysis.tones
            prepared = [c for c in pool if self._can_resolve_tendencies(c, ctx, next_tones)]
            if prepared:
                pool = prepared
            else:
                diagnostics.add(
                    ctx.index,
                    DiagSeverity.INFO,
                    DiagCode.SEVENTH_LOOKAHEAD_UNAVAILABLE,
                    "no placement of the 7th can step down into the next chord",
                )

        for pc in sorted(tones.tensions):
            if ctx.melody is not None and ctx.melody % 12 == pc:
                continue
            fallback: list[Voicing] | None = None
            chosen: list[Voicing] | None = None
            for voice in TENSION_PRIORITY:
                if voice is Voice.SOPRANO and ctx.melody is not None:
                    continue
                holding = [c for c in pool if c[voice] % 12 == pc]
                if not holding:
                    continue
                if fallback is None:
                    fallback = holding
                covered = [c for c in holding if _covers(c, tones)]
                if covered:
                    chosen = covered
                    break
            if chosen is not None:
                pool = chosen
            elif fallback is not None:
                pool = fallback
        return pool

    # ------------------------------------------------------------------
    # Private helpers: cost model
    # ------------------------------------------------------------------

    def _doubling_cost(self, candidate: Voicing, ctx: _RegionContext) -> float:
        cfg = self.config
        tones = ctx.analysis.tones
        tendency_pcs = set(tones.tensions)
        if tones.seventh is not None:
            tendency_pcs.add(tones.seventh)
        if tones.augmented_fifth:
            tendency_pcs.add(tones.fifth)
        if ctx.analysis.leading_tone is not None:
            tendency_pcs.add(ctx.analysis.leading_tone)

        cost = 0.0
        for pc, count in Counter(midi % 12 for midi in candidate).items():
            extra = count - 1
            if extra <= 0 or pc == tones.root:
                continue
            if pc in tendency_pcs:
                cost += cfg.tendency_doubling_penalty * extra
            elif pc == tones.third:
                cost += cfg.third_doubling_penalty * extra
            else:
                cost += cfg.other_doubling_penalty * extra
        return cost

    def _tendency_cost(self, candidate: Voicing, ctx: _RegionContext) -> float:
        cfg = self.config
        tones = ctx.analysis.tones
        pcs = _pcs(candidate)
        cost = 0.0

        if ctx.prev_voices is not None and ctx.prev_analysis is not None:
            prev = ctx.prev_voices
            prev_analysis = ctx.prev_analysis
            if (
                prev_analysis.leading_tone is not None
                and prev_analysis.leading_target in tones.all_pitch_classes
            ):
                for voice in Voice:
                    if prev[voice] % 12 == prev_analysis.leading_tone and candidate[voice] == prev[voice] + 1:
                        bonus = cfg.leading_tone_bonus
                        if tones.seventh is not None and tones.seventh not in pcs:
                            bonus *= cfg.leading_tone_soften
                        cost -= bonus
            if tones.seventh is not None:
                for voice in Voice:
                    if (
                        prev[voice] % 12 == prev_analysis.tones.third
                        and candidate[voice] == prev[voice]
                        and candidate[voice] % 12 == tones.seventh
                    ):
                        cost -= cfg.common_tone_bonus

        if ctx.next_analysis is not None:
            for voice in Voice:
                if voice is Voice.SOPRANO and (ctx.melody is not None or ctx.next_melody is not None):
                    continue
                kind = tendency_of(candidate[voice], tones)
                if kind is None:
                    continue
                if resolution_targets(voice, candidate[voice], kind, ctx.next_analysis.tones, cfg):
                    cost -= cfg.preparation_bonus
                else:
                    cost += cfg.unprepared_penalty
        return cost

    def _cost(self, candidate: Voicing, ctx: _RegionContext) -> float:
        cfg = self.config
        tones = ctx.analysis.tones
        bass, tenor, alto, soprano = candidate
        cost = 0.0

        if ctx.prev_voices is not None:
            for voice, weight in zip(Voice, cfg.weights):
                cost += weight * abs(candidate[voice] - ctx.prev_voices[voice])
        else:
            cost += cfg.anchor_weight * abs(bass - cfg.bass_center)
            if ctx.melody is None:
                cost += cfg.anchor_weight * abs(soprano - cfg.soprano_center)

        cost += cfg.register_weight * ((tenor - cfg.tenor_center) ** 2 + (alto - cfg.alto_center) ** 2)
        cost += cfg.compression_weight * (
            abs((alto - tenor) - cfg.alto_tenor_gap) + abs((soprano - alto) - cfg.soprano_alto_gap)
        )

        pcs = _pcs(candidate)
        cost += cfg.coverage_penalty * len(tones.required - pcs)
        cost += cfg.tension_penalty * len(tones.tensions - pcs)
        cost += self._doubling_cost(candidate, ctx)
        cost += self._tendency_cost(candidate, ctx)
        return cost

    # ------------------------------------------------------------------
    # Private helpers: per-region solve
    # ------------------------------------------------------------------

    def _guards(
        self, choice: Voicing, ctx: _RegionContext, active: list[Requirement]
    ) -> list[VoiceGuard]:
        tones = ctx.analysis.tones
        guards: list[VoiceGuard] = []
        for voice in Voice:
            pc = choice[voice] % 12
            if voice is Voice.SOPRANO and ctx.melody is not None:
                guards.append(VoiceGuard(GuardKind.PINNED_MELODY, pc))
            elif any(r.voice is voice and r.satisfied_by(choice) for r in active):
                guards.append(VoiceGuard(GuardKind.PROTECTED_RESOLUTION, pc))
            elif pc in tones.tensions:
                guards.append(VoiceGuard(GuardKind.PROTECTED_TENSION, pc))
            else:
                guards.append(FREE)
        return guards

    def _finish(
        self,
        choice: Voicing,
        ctx: _RegionContext,
        active: list[Requirement],
        diagnostics: DiagnosticsCollector,
    ) -> Voicing:
        tones = ctx.analysis.tones
        repair = repair_coverage(choice, tones, self._guards(choice, ctx, active), self.config)
        analysis = ctx.analysis

        for voice, before, after in repair.changes:
            diagnostics.add(
                ctx.index,
                DiagSeverity.FORCED,
                DiagCode.COVERAGE_FIX_APPLIED,
                f"{voice.label} moved {analysis.spell(before)} -> {analysis.spell(after)} "
                f"to cover {analysis.spell_pitch_class(after % 12)}",
                voice_index=int(voice),
                before_midi=before,
                after_midi=after,
            )
        for pc in repair.missing:
            if pc in tones.required:
                code, what = DiagCode.MISSING_REQUIRED_TONE, "required tone"
            else:
                code, what = DiagCode.TENSION_UNPLACED, "tension"
            diagnostics.add(
                ctx.index,
                DiagSeverity.WARNING,
                code,
                f"{what} {analysis.spell_pitch_class(pc)} could not be placed in {analysis.symbol}",
            )

        problems = voicing_violations(repair.voices, self.config)
        if problems:
            logger.error("Region %d voicing breaks ordering: %s", ctx.index, "; ".join(problems))
        return repair.voices

    def _solve_region(self, ctx: _RegionContext, diagnostics: DiagnosticsCollector) -> Voicing:
        tones = ctx.analysis.tones
        candidates = self._enumerate(tones, ctx.melody, self._windows())
        if not candidates:
            candidates = self._enumerate(tones, ctx.melody, self._widened_windows(ctx.melody))
            diagnostics.add(
                ctx.index,
                DiagSeverity.WARNING,
                DiagCode.REGISTER_RELAXED,
                "no voicing fits the register windows; windows widened",
            )
        if not candidates:
            diagnostics.add(
                ctx.index,
                DiagSeverity.WARNING,
                DiagCode.REGISTER_RELAXED,
                "voicing stacked below the soprano",
            )
            return self._finish(self._stack_below(tones, ctx.melody), ctx, [], diagnostics)

        requirements: list[Requirement] = []
        if ctx.prev_voices is not None and ctx.prev_analysis is not None:
            requirements = self._requirements(
                ctx, ctx.prev_voices, ctx.prev_analysis, diagnostics
            )
        pool, active = self._apply_requirements(ctx, candidates, requirements, diagnostics)
        if ctx.prev_voices is None:
            pool = self._first_region_placement(ctx, pool, diagnostics)

        costs = {candidate: round(self._cost(candidate, ctx), 6) for candidate in candidates}
        choice = min(pool, key=lambda c: (costs[c], c))

        if active:
            unconstrained = min(candidates, key=lambda c: (costs[c], c))
            for requirement in active:
                if requirement.satisfied_by(unconstrained):
                    continue
                code = (
                    DiagCode.FORCED_7TH_RESOLUTION
                    if requirement.kind is TendencyKind.SEVENTH
                    else DiagCode.FORCED_AUG5_RESOLUTION
                )
                diagnostics.add(
                    ctx.index,
                    DiagSeverity.FORCED,
                    code,
                    f"{requirement.voice.label} {requirement.kind.value} "
                    f"{midi_to_name(requirement.source_midi)} -> "
                    f"{midi_to_name(choice[requirement.voice])} overrides the cheapest voicing",
                    voice_index=int(requirement.voice),
                    before_midi=requirement.source_midi,
                    after_midi=choice[requirement.voice],
                )

        return self._finish(choice, ctx, active, diagnostics)

    def _motion(self, prev: Voicing | None, voices: Voicing) -> VoiceMotion:
        if prev is None:
            return VoiceMotion(deltas=(None,) * 4, large_leaps=(False,) * 4)
        deltas = tuple(now - before for now, before in zip(voices, prev))
        return VoiceMotion(
            deltas=deltas,
            large_leaps=tuple(abs(d) >= self.config.large_leap for d in deltas),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def voice(self, key: TheoryKey, regions: Sequence[ChordRegion]) -> VoicingResult:
        """
        Voice a whole progression.

        Args:
            key:     Key the recipes are expressed in.
            regions: Contiguous chord regions, in order.

        Returns:
            VoicingResult with one VoicedChord per region, the per-voice motion,
            the diagnostic events and the chord analyses.
        """
        analyses = [self.analyzer.analyze(key, region.chord_event.recipe) for region in regions]
        diagnostics = DiagnosticsCollector()
        result = VoicingResult(analyses=analyses)

        prev: Voicing | None = None
        for index, region in enumerate(regions):
            has_next = index + 1 < len(regions)
            ctx = _RegionContext(
                index=index,
                analysis=analyses[index],
                melody=region.chord_event.melody_midi,
                prev_voices=prev,
                prev_analysis=analyses[index - 1] if index > 0 else None,
                next_analysis=analyses[index + 1] if has_next else None,
                next_melody=regions[index + 1].chord_event.melody_midi if has_next else None,
            )
            voices = self._solve_region(ctx, diagnostics)
            result.voiced.append(VoicedChord(voices))
            result.motions.append(self._motion(prev, voices))
            prev = voices

        result.diagnostics = diagnostics.events
        logger.debug("Voiced %d regions with %d diagnostics", len(regions), len(diagnostics))
        return result
