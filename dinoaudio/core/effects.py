"""
Typed effect dispatch for the DinoAudio engine.

Each effect kind is a small frozen dataclass carrying its own parameters;
`apply` validates the selection, runs the matching transform and wraps the
outcome in an EffectResult so callers never see a half-processed buffer.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Callable, Union

from . import effects_basic, effects_studio
from .buffer import PcmBuffer
from .config import EFFECTS_CONFIG
from .errors import AudioEngineError, InvalidFadeDuration
from .selection import SelectionRange
from .types import EffectResult

logger = logging.getLogger("DinoAudio")


@dataclass(frozen=True, slots=True)
class Trim:
    label = "Trim"


@dataclass(frozen=True, slots=True)
class FadeIn:
    duration: float = EFFECTS_CONFIG.fade_duration
    label = "Fade in"


@dataclass(frozen=True, slots=True)
class FadeOut:
    duration: float = EFFECTS_CONFIG.fade_duration
    label = "Fade out"


@dataclass(frozen=True, slots=True)
class Normalize:
    label = "Normalize"


@dataclass(frozen=True, slots=True)
class NoiseGate:
    threshold: float = EFFECTS_CONFIG.noise_gate_threshold
    label = "Noise gate"


@dataclass(frozen=True, slots=True)
class StudioEffect:
    label = "Studio effect"


Effect = Union[Trim, FadeIn, FadeOut, Normalize, NoiseGate, StudioEffect]


def _trim(effect: Trim, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_basic.trim(buffer, sel.start, sel.end)


def _fade_in(effect: FadeIn, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_basic.fade_in(buffer, sel.start, sel.end, effect.duration)


def _fade_out(effect: FadeOut, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_basic.fade_out(buffer, sel.start, sel.end, effect.duration)


def _normalize(effect: Normalize, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_basic.normalize(buffer, sel.start, sel.end)


def _noise_gate(effect: NoiseGate, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_basic.noise_gate(buffer, sel.start, sel.end, effect.threshold)


def _studio(effect: StudioEffect, buffer: PcmBuffer, sel: SelectionRange) -> PcmBuffer:
    return effects_studio.studio_effect(buffer, sel.start, sel.end)


_HANDLERS: dict[type, Callable[..., PcmBuffer]] = {
    Trim: _trim,
    FadeIn: _fade_in,
    FadeOut: _fade_out,
    Normalize: _normalize,
    NoiseGate: _noise_gate,
    StudioEffect: _studio,
}


def _fade_warning(effect: Effect, buffer: PcmBuffer, sel: SelectionRange) -> str | None:
    """Message for a fade whose ramp window has no frames, else None."""
    if isinstance(effect, FadeIn):
        lo, hi = effects_basic.fade_in_window(buffer.sample_rate, sel.start, sel.end, effect.duration)
    elif isinstance(effect, FadeOut):
        lo, hi = effects_basic.fade_out_window(buffer.sample_rate, sel.start, sel.end, effect.duration)
    else:
        return None
    if hi - lo > 0:
        return None
    return str(InvalidFadeDuration(
        f"{effect.label} of {effect.duration:.3f}s covers no samples in this selection; audio left unchanged."
    ))


def apply(effect: Effect, buffer: PcmBuffer, selection: SelectionRange) -> EffectResult:
    """
    Apply one effect to the selected region of a buffer.

    Args:
        effect: Effect kind with its parameters
        buffer: Source buffer (never modified)
        selection: Region in seconds

    Returns:
        EffectResult holding the new buffer, or the error message on failure
    """
    handler = _HANDLERS.get(type(effect))
    if handler is None:
        raise TypeError(f"Unknown effect: {effect!r}")

    try:
        selection.validate(buffer.duration)
        new_buffer = handler(effect, buffer, selection)
    except AudioEngineError as e:
        logger.error("%s failed: %s", effect.label, e)
        return EffectResult(success=False, error=str(e))

    warning = _fade_warning(effect, buffer, selection)
    logger.info("%s applied to %.3fs-%.3fs", effect.label, selection.start, selection.end)
    return EffectResult(success=True, buffer=new_buffer, warning=warning)
