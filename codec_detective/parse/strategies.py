"""Per-codec matchers for FFmpeg debug output.

Each `CodecStrategy` bundles the three decisions the line classifier needs:
whether a line opens a new frame (`boundary`), which picture type that
boundary token denotes (`classify`) and how to pull positional values out
of a data line (`extract`).  An `order` matcher picks up decoder-reported
POC/order tokens.  A strategy is selected once per analysis.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Pattern, Tuple

from ..models.core import FrameType, MetricKind
from .values import parse_payload

logger = logging.getLogger(__name__)

BoundaryMatcher = Callable[[str], Optional[str]]
TypeClassifier = Callable[[str], FrameType]
ValueExtractor = Callable[[str], Optional[Tuple[int, List[int]]]]
OrderMatcher = Callable[[str], Optional[int]]

# CU offsets are packed as y * stride + x.
OFFSET_STRIDE = 65536

_PREFIX_RE = re.compile(r"^\s*\[(?P<tag>[\w.:#-]+) @ (?:0x)?[0-9a-fA-F]+\]\s?")

_CODEC_ALIASES: Mapping[str, str] = {
    'h264': 'h264',
    'avc': 'h264',
    'avc1': 'h264',
    'h265': 'hevc',
    'hevc': 'hevc',
    'hvc1': 'hevc',
    'av1': 'av1',
    'libdav1d': 'av1',
    'libaom-av1': 'av1',
    'vp9': 'vp9',
    'libvpx-vp9': 'vp9',
}

_POSITIONAL_RE = re.compile(
    # Exactly one separator; any further spaces pad the first packed column.
    r"^\s*(?P<offset>\d+)(?:\s*:)?[ \t]"
    r"(?P<payload>\[?[ \t]*(?:QP\s*=\s*)?\d+(?:[\s,]+(?:QP\s*=\s*)?\d+)*[\s,]*\]?)\s*$",
    re.IGNORECASE,
)
_CU_SIZE_POS_RE = re.compile(r"CU size (?P<w>\d+)x(?P<h>\d+) pos \((?P<x>\d+),\s*(?P<y>\d+)\)")
_CU_AT_RE = re.compile(r"CU at (?P<x>\d+) (?P<y>\d+) coded as \w+ \((?P<w>\d+)x(?P<h>\d+)\)")

_NEW_FRAME_RE = re.compile(r"\bNew frame, type:\s*(?P<token>\w)")
_GENERIC_NEW_FRAME_RE = re.compile(
    r"\bNew\s+(?:frame|picture)\b(?:.*?\b(?:pict_)?type\s*[:=]\s*(?P<token>\w+))?",
    re.IGNORECASE,
)
_NAL_RE = re.compile(r"(?:nal_unit_type:\s*\d+\s*\(|New NAL unit \(\d+ bytes\) of type )(?P<token>\w+)")
_OBU_RE = re.compile(
    r"(?:\bobu_type\b\s*[:=]?\s*\d*\s*\(?|New OBU \(\d+ bytes\) of type )(?:OBU_)?(?P<token>[A-Z_]+)"
)

_POC_RE = re.compile(r"\bPOC\b\s*[:=]?\s*(?P<order>-?\d+)")
_H264_ORDER_RE = re.compile(r"\b(?:poc|display_picture_number)\b\s*[:=]?\s*(?P<order>-?\d+)", re.IGNORECASE)
_AV1_ORDER_RE = re.compile(r"\border_hint\b\s*[:=]\s*(?P<order>\d+)")

PICT_TYPE_TABLE: Mapping[str, FrameType] = {
    'I': FrameType.I,
    'i': FrameType.I,
    'P': FrameType.P,
    'p': FrameType.P,
    'S': FrameType.P,
    'B': FrameType.B,
    'b': FrameType.B,
}

HEVC_NAL_TYPE_TABLE: Mapping[str, FrameType] = {
    'IDR': FrameType.I,
    'IDR_W_RADL': FrameType.I,
    'IDR_N_LP': FrameType.I,
    'CRA_NUT': FrameType.I,
    'BLA_W_LP': FrameType.I,
    'BLA_W_RADL': FrameType.I,
    'BLA_N_LP': FrameType.I,
    'TRAIL_R': FrameType.P,
    'TRAIL_N': FrameType.P,
    'TSA_N': FrameType.P,
    'TSA_R': FrameType.P,
    'STSA_N': FrameType.P,
    'STSA_R': FrameType.P,
    'RADL_N': FrameType.B,
    'RADL_R': FrameType.B,
    'RASL_N': FrameType.B,
    'RASL_R': FrameType.B,
}

AV1_OBU_TYPE_TABLE: Mapping[str, FrameType] = {
    'FRAME': FrameType.P,
    'FRAME_HEADER': FrameType.P,
}


@dataclass(frozen=True)
class CodecStrategy:
    """Matcher bundle for one (metric kind, codec) pair."""

    kind: MetricKind
    codec: str
    boundary: BoundaryMatcher
    classify: TypeClassifier
    extract: ValueExtractor
    order: OrderMatcher

    @property
    def generic(self) -> bool:
        return not self.codec


def normalize_codec(name: Optional[str]) -> str:
    """Map FFmpeg/ffprobe codec spellings onto canonical lowercase ids."""

    if not name:
        return ''
    lowered = name.strip().lower()
    return _CODEC_ALIASES.get(lowered, lowered)


def split_prefix(line: str) -> Tuple[Optional[str], str]:
    """Split ``[hevc @ 0x55d1] text`` into (normalized codec or None, text)."""

    match = _PREFIX_RE.match(line)
    if not match:
        return None, line
    tag = normalize_codec(match.group('tag'))
    codec = tag if tag in _CODEC_ALIASES.values() else None
    return codec, line[match.end():]


def _boundary_from(pattern: Pattern[str], accepted: Optional[FrozenSet[str]] = None) -> BoundaryMatcher:
    def match_boundary(content: str) -> Optional[str]:
        match = pattern.search(content)
        if not match:
            return None
        token = match.group('token') or ''
        if accepted is not None and token not in accepted:
            return None
        return token

    return match_boundary


def _union_boundary(*matchers: BoundaryMatcher) -> BoundaryMatcher:
    def match_boundary(content: str) -> Optional[str]:
        for matcher in matchers:
            token = matcher(content)
            if token is not None:
                return token
        return None

    return match_boundary


def _table_classifier(table: Mapping[str, FrameType]) -> TypeClassifier:
    def classify(token: str) -> FrameType:
        return table.get(token, FrameType.UNKNOWN)

    return classify


def _order_from(pattern: Pattern[str]) -> OrderMatcher:
    def match_order(content: str) -> Optional[int]:
        match = pattern.search(content)
        if not match:
            return None
        return int(match.group('order'))

    return match_order


def extract_positional(content: str, *, packed: bool = True) -> Optional[Tuple[int, List[int]]]:
    """Offset-plus-payload lines, e.g. ``"  3 262626"`` or ``"3: [26 27]"``."""

    match = _POSITIONAL_RE.match(content)
    if not match:
        return None
    return int(match.group('offset')), parse_payload(match.group('payload'), packed=packed)


def extract_cu(content: str) -> Optional[Tuple[int, List[int]]]:
    """Coding-unit lines yield one area keyed by the unit's position."""

    match = _CU_SIZE_POS_RE.search(content) or _CU_AT_RE.search(content)
    if match:
        area = int(match.group('w')) * int(match.group('h'))
        offset = int(match.group('y')) * OFFSET_STRIDE + int(match.group('x'))
        return offset, [area]
    # Areas are not fixed-width two-digit columns.
    return extract_positional(content, packed=False)


_HEVC_BOUNDARY = _boundary_from(_NAL_RE, frozenset(HEVC_NAL_TYPE_TABLE))
_AV1_BOUNDARY = _boundary_from(_OBU_RE, frozenset(AV1_OBU_TYPE_TABLE))
_GENERIC_TABLE: Dict[str, FrameType] = {**PICT_TYPE_TABLE, **HEVC_NAL_TYPE_TABLE, **AV1_OBU_TYPE_TABLE}

_STRATEGIES: Dict[Tuple[MetricKind, str], CodecStrategy] = {
    (MetricKind.QP, 'h264'): CodecStrategy(
        kind=MetricKind.QP,
        codec='h264',
        boundary=_boundary_from(_NEW_FRAME_RE),
        classify=_table_classifier(PICT_TYPE_TABLE),
        extract=extract_positional,
        order=_order_from(_H264_ORDER_RE),
    ),
    (MetricKind.QP, 'hevc'): CodecStrategy(
        kind=MetricKind.QP,
        codec='hevc',
        boundary=_HEVC_BOUNDARY,
        classify=_table_classifier(HEVC_NAL_TYPE_TABLE),
        extract=extract_positional,
        order=_order_from(_POC_RE),
    ),
    (MetricKind.CU, 'hevc'): CodecStrategy(
        kind=MetricKind.CU,
        codec='hevc',
        boundary=_HEVC_BOUNDARY,
        classify=_table_classifier(HEVC_NAL_TYPE_TABLE),
        extract=extract_cu,
        order=_order_from(_POC_RE),
    ),
    (MetricKind.CU, 'av1'): CodecStrategy(
        kind=MetricKind.CU,
        codec='av1',
        boundary=_AV1_BOUNDARY,
        classify=_table_classifier(AV1_OBU_TYPE_TABLE),
        extract=extract_cu,
        order=_order_from(_AV1_ORDER_RE),
    ),
}

_GENERIC_STRATEGIES: Dict[MetricKind, CodecStrategy] = {
    MetricKind.QP: CodecStrategy(
        kind=MetricKind.QP,
        codec='',
        boundary=_boundary_from(_GENERIC_NEW_FRAME_RE),
        classify=_table_classifier(_GENERIC_TABLE),
        extract=extract_positional,
        order=_order_from(_POC_RE),
    ),
    MetricKind.CU: CodecStrategy(
        kind=MetricKind.CU,
        codec='',
        boundary=_union_boundary(_HEVC_BOUNDARY, _AV1_BOUNDARY),
        classify=_table_classifier(_GENERIC_TABLE),
        extract=extract_cu,
        order=_order_from(_POC_RE),
    ),
}


def select_strategy(kind: MetricKind, codec: Optional[str] = None) -> CodecStrategy:
    """Return the codec-specific strategy, or the generic fallback set."""

    normalized = normalize_codec(codec)
    strategy = _STRATEGIES.get((kind, normalized))
    if strategy is None:
        if normalized:
            logger.debug('No %s strategy for codec %r; using generic patterns', kind.value, normalized)
        return _GENERIC_STRATEGIES[kind]
    return strategy


def has_specific_strategy(kind: MetricKind, codec: Optional[str]) -> bool:
    return (kind, normalize_codec(codec)) in _STRATEGIES
